"""Pydantic DTOs for the Invoice feature."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

InvoiceStatus = Literal["draft", "sent", "paid"]


class InvoiceLine(CamelModel):
    description: str = ""
    item_id: str | None = None
    qty: int = Field(1, ge=0)
    price: float = Field(0, ge=0)
    tax_percent: float = Field(0, ge=0, le=100)


class InvoiceSchema(CamelModel):
    """A bill to a customer. ``totals`` (and ``amount`` when lines exist) are derived."""

    quote_id: str | None = None
    customer_name: str = Field("Customer", min_length=1, max_length=200)
    amount: float = Field(0, ge=0)
    items: list[InvoiceLine] = []
    status: InvoiceStatus = "draft"
    due_date: str | None = None
