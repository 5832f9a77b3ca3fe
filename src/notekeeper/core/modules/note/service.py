from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from notekeeper.core.core import Service
from notekeeper.core.db import store_errors
from notekeeper.core.modules.note.models import Note, NoteCategory, NotePriority, NoteStats
from notekeeper.core.modules.note.query import build_notes_query, page_bounds
from notekeeper.core.pagination import PaginationResult
from notekeeper.errors import NotFoundError, ValidationError
from notekeeper.utils import now

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "content", "category", "priority", "tags", "is_completed"})


class NoteService(Service):
    """Manages notes, always scoped to the owning user."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("notes")

    async def on_start(self) -> None:
        """Create indexes for owner lookup and sorting."""
        await self._collection.create_index([("user_id", 1), ("created_at", -1)])

    async def list_notes(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        category: NoteCategory | None = None,
        priority: NotePriority | None = None,
        completed: bool | None = None,
    ) -> PaginationResult[Note]:
        """Get a page of the user's notes, newest first."""
        skip, limit = page_bounds(page, limit)
        query = build_notes_query(user_id, search, category, priority, completed)

        with store_errors("list_notes"):
            total = await self._collection.count_documents(query)
            cursor = self._collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
            items = await Note.list_cursor(cursor)

        logger.debug("list_notes", user_id=user_id, page=page, limit=limit, total=total, returned=len(items))
        return PaginationResult(items=items, total=total, page=page, limit=limit)

    async def get_note(self, user_id: UUID, note_id: UUID) -> Note:
        with store_errors("get_note"):
            doc = await self._collection.find_one({"_id": note_id, "user_id": user_id})
        if doc is None:
            raise NotFoundError("Note not found")
        return Note.model_validate(doc)

    async def create_note(
        self,
        user_id: UUID,
        title: str,
        content: str,
        category: NoteCategory = NoteCategory.PERSONAL,
        priority: NotePriority = NotePriority.MEDIUM,
        tags: list[str] | None = None,
        is_completed: bool = False,
    ) -> Note:
        note = Note(
            user_id=user_id,
            title=title,
            content=content,
            category=category,
            priority=priority,
            tags=tags or [],
            is_completed=is_completed,
        )
        with store_errors("create_note"):
            await self._collection.insert_one(note.to_mongo())
        return note

    async def update_note(self, user_id: UUID, note_id: UUID, changes: dict[str, Any]) -> Note:
        """Apply a partial update. Only keys in UPDATABLE_FIELDS are accepted."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not changes:
            return await self.get_note(user_id, note_id)

        with store_errors("update_note"):
            doc = await self._collection.find_one_and_update(
                {"_id": note_id, "user_id": user_id},
                {"$set": {**changes, "updated_at": now()}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFoundError("Note not found")
        return Note.model_validate(doc)

    async def delete_note(self, user_id: UUID, note_id: UUID) -> None:
        with store_errors("delete_note"):
            result = await self._collection.delete_one({"_id": note_id, "user_id": user_id})
        if result.deleted_count == 0:
            raise NotFoundError("Note not found")

    async def get_stats(self, user_id: UUID) -> NoteStats:
        """Count the user's notes overall, completed, and per category and priority."""
        with store_errors("note_stats"):
            total = await self._collection.count_documents({"user_id": user_id})
            completed = await self._collection.count_documents({"user_id": user_id, "is_completed": True})
            by_category = {
                category: await self._collection.count_documents({"user_id": user_id, "category": category})
                for category in NoteCategory
            }
            by_priority = {
                priority: await self._collection.count_documents({"user_id": user_id, "priority": priority})
                for priority in NotePriority
            }
        return NoteStats(total=total, completed=completed, by_category=by_category, by_priority=by_priority)
