"""Pydantic DTOs for the Quote feature."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

QuoteStatus = Literal["draft", "sent", "accepted", "rejected"]


class QuoteLine(CamelModel):
    item_id: str | None = None
    name: str = ""
    qty: int = Field(1, ge=0)
    price: float = Field(0, ge=0)


class QuoteSchema(CamelModel):
    """A priced offer to a lead. ``amount`` is derived from the lines."""

    lead_id: str = Field(..., min_length=1)
    project_id: str | None = None
    items: list[QuoteLine] = []
    status: QuoteStatus = "draft"


class QuoteConvertRequest(CamelModel):
    """Turns an accepted quote into an installation project."""

    customer_name: str | None = Field(None, max_length=200)
    site_address: str = ""
    capacity_kw: float = Field(0, ge=0)
