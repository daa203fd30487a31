"""Pydantic DTOs for tasks, document attachments and announcements."""

from typing import Literal

from pydantic import Field, HttpUrl

from .common import CamelModel


class TaskSchema(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    project_id: str | None = None
    assignee: str = ""
    due_date: str = ""
    status: Literal["open", "done"] = "open"


class DocumentSchema(CamelModel):
    """A link to a file attached to a lead or project."""

    entity_type: Literal["lead", "project"]
    entity_id: str = Field(..., min_length=1)
    title: str = "Attachment"
    url: HttpUrl


class AnnouncementSchema(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = ""
    audience: Literal["all", "staff", "hr"] = "all"
    pinned: bool = False


class AttendanceSchema(CamelModel):
    """Headcount for one day — a single scalar record, not a collection."""

    date: str = ""
    present: int = Field(0, ge=0)
    absent: int = Field(0, ge=0)
