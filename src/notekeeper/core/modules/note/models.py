from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notekeeper.core.db import MongoModel
from notekeeper.utils import now


class NoteCategory(StrEnum):
    PERSONAL = "personal"
    WORK = "work"
    IDEAS = "ideas"
    TODO = "todo"
    OTHER = "other"


class NotePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Note(MongoModel):
    """Note owned by a single user."""

    user_id: UUID
    title: str
    content: str
    category: NoteCategory = NoteCategory.PERSONAL
    priority: NotePriority = NotePriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    is_completed: bool = False
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_serialization_defaults_required=True,
    )


class NoteStats(BaseModel):
    """Per-user note counters for the dashboard."""

    total: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    by_category: dict[NoteCategory, int]
    by_priority: dict[NotePriority, int]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
