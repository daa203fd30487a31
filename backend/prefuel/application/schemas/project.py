"""Pydantic DTOs for the Project feature."""

from typing import Any, Literal

from pydantic import Field

from .common import CamelModel

ProjectStatus = Literal["not_started", "working", "completed"]


class ProjectSchema(CamelModel):
    """An installation site. ``installation`` holds milestone details as-is."""

    customer_name: str = Field(..., min_length=1, max_length=200)
    site_address: str = ""
    scheme: str = ""
    capacity_kw: float = Field(0, ge=0)
    status: ProjectStatus = "not_started"
    installation: dict[str, Any] = {}
