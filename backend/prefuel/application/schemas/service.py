"""Pydantic DTOs for after-sales work: complaints and service tickets."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

Priority = Literal["low", "medium", "high"]


class ComplaintSchema(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str | None = None
    customer_email: str | None = None
    project_id: str | None = None
    complaint_type: Literal["technical", "billing", "service", "other"] = "technical"
    priority: Priority = "medium"
    status: Literal["open", "in_progress", "resolved", "closed"] = "open"
    assigned_to: str = ""
    resolution: str = ""


class ServiceTicketSchema(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    project_id: str | None = None
    lead_id: str | None = None
    priority: Priority = "low"
    status: Literal["open", "in_progress", "resolved"] = "open"
    assigned_to: str = ""
