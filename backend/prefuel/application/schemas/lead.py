"""Pydantic DTOs for the Lead feature."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

LeadSource = Literal["organic", "inorganic", "referral", "inbound", "outbound"]
LeadStatus = Literal["new", "qualified", "quoted", "won", "lost"]


class LeadSchema(CamelModel):
    """A sales lead — a prospective rooftop-solar customer."""

    name: str = Field(..., min_length=1, max_length=200, examples=["Anil Kumar"])
    phone: str | None = Field(None, max_length=40)
    email: str | None = Field(None, max_length=200, pattern=r"^[^@\s]+@[^@\s]+$")
    source: LeadSource = "organic"
    status: LeadStatus = "new"
    project_size_kw: float = Field(0, ge=0)
