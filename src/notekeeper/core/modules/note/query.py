"""Pure helpers turning list parameters into MongoDB queries."""

import re
from typing import Any
from uuid import UUID

from notekeeper.core.modules.note.models import NoteCategory, NotePriority
from notekeeper.errors import ValidationError

MAX_SEARCH_LENGTH = 100
MAX_PAGE_SIZE = 1000


def build_search_condition(search: str) -> dict[str, Any] | None:
    """Case-insensitive substring match over title, content and tags."""
    search = search.strip()
    if not search:
        return None
    if len(search) > MAX_SEARCH_LENGTH:
        raise ValidationError(f"Search term must be at most {MAX_SEARCH_LENGTH} characters")

    pattern = {"$regex": re.escape(search), "$options": "i"}
    return {"$or": [{"title": pattern}, {"content": pattern}, {"tags": pattern}]}


def build_notes_query(
    user_id: UUID,
    search: str | None = None,
    category: NoteCategory | None = None,
    priority: NotePriority | None = None,
    completed: bool | None = None,
) -> dict[str, Any]:
    """Build the filter for a user's note listing. Notes are always scoped to their owner."""
    query: dict[str, Any] = {"user_id": user_id}
    if category is not None:
        query["category"] = category
    if priority is not None:
        query["priority"] = priority
    if completed is not None:
        query["is_completed"] = completed
    if search:
        condition = build_search_condition(search)
        if condition:
            query.update(condition)
    return query


def page_bounds(page: int, limit: int) -> tuple[int, int]:
    """Return (skip, limit) for a 1-based page number."""
    if page < 1:
        raise ValidationError("Page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    return (page - 1) * limit, limit
