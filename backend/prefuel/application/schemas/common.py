"""Shared base for entity DTOs — camelCase on the wire, snake_case in Python."""

from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema for snapshot records.

    Unknown keys are kept (``extra="allow"``) so free-form page data such as a
    project's installation details survives validation untouched.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }


class ListResponse(BaseModel):
    """Paginated list envelope returned by every collection route."""

    items: list[dict[str, Any]]
    total: int = Field(..., ge=0)
