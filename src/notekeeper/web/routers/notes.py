from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import Field, StringConstraints

from notekeeper.core.modules.note.models import Note, NoteCategory, NotePriority, NoteStats
from notekeeper.core.modules.note.query import MAX_PAGE_SIZE, MAX_SEARCH_LENGTH
from notekeeper.core.pagination import PaginationResult
from notekeeper.web.deps import AppDep, CurrentUserIdDep
from notekeeper.web.models import RequestModel
from notekeeper.web.openapi import ErrorResponse

router: APIRouter = APIRouter(tags=["notes"])

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]
Tag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]


class CreateNoteRequest(RequestModel):
    """Request to create a new note."""

    title: Title = Field(..., description="Title, 1-100 characters")
    content: Content = Field(..., description="Body, 1-5000 characters")
    category: NoteCategory = Field(NoteCategory.PERSONAL, description="Category")
    priority: NotePriority = Field(NotePriority.MEDIUM, description="Priority")
    tags: list[Tag] = Field(default_factory=list, max_length=20, description="Tags, each at most 20 characters")
    is_completed: bool = Field(False, description="Completion flag")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Groceries",
                    "content": "Milk, eggs, bread",
                    "category": "todo",
                    "priority": "high",
                    "tags": ["shopping"],
                    "isCompleted": False,
                }
            ]
        }
    }


class UpdateNoteRequest(RequestModel):
    """Request to update note fields (partial update). Omitted or null fields are left unchanged."""

    title: Title | None = None
    content: Content | None = None
    category: NoteCategory | None = None
    priority: NotePriority | None = None
    tags: list[Tag] | None = Field(None, max_length=20)
    is_completed: bool | None = None


@router.get(
    "/notes",
    summary="List notes",
    description="Get a page of the current user's notes, newest first, optionally filtered.",
    operation_id="listNotes",
    responses={
        200: {"description": "Paginated list of notes"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_notes(
    app: AppDep,
    user_id: CurrentUserIdDep,
    page: Annotated[int, Query(ge=1, description="Page number (1-based)")] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Notes per page")] = 10,
    search: Annotated[
        str | None, Query(max_length=MAX_SEARCH_LENGTH, description="Text to look for in title, content and tags")
    ] = None,
    category: Annotated[NoteCategory | None, Query(description="Only notes in this category")] = None,
    priority: Annotated[NotePriority | None, Query(description="Only notes with this priority")] = None,
    completed: Annotated[bool | None, Query(description="Only completed (true) or open (false) notes")] = None,
) -> PaginationResult[Note]:
    return await app.get_notes(user_id, page, limit, search, category, priority, completed)


@router.get(
    "/notes/stats",
    summary="Note statistics",
    description="Count the current user's notes, overall and per category and priority.",
    operation_id="getNoteStats",
    responses={
        200: {"description": "Note counters"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_note_stats(app: AppDep, user_id: CurrentUserIdDep) -> NoteStats:
    return await app.get_note_stats(user_id)


@router.get(
    "/notes/{note_id}",
    summary="Get note",
    description="Get a single note of the current user.",
    operation_id="getNote",
    responses={
        200: {"description": "Note details"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def get_note(note_id: UUID, app: AppDep, user_id: CurrentUserIdDep) -> Note:
    return await app.get_note(user_id, note_id)


@router.post(
    "/notes",
    summary="Create note",
    description="Create a new note for the current user.",
    operation_id="createNote",
    status_code=201,
    responses={
        201: {"description": "Note created"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def create_note(request: CreateNoteRequest, app: AppDep, user_id: CurrentUserIdDep) -> Note:
    return await app.create_note(
        user_id,
        request.title,
        request.content,
        request.category,
        request.priority,
        request.tags,
        request.is_completed,
    )


@router.put(
    "/notes/{note_id}",
    summary="Update note",
    description="Update some fields of a note of the current user.",
    operation_id="updateNote",
    responses={
        200: {"description": "Updated note"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def update_note(note_id: UUID, request: UpdateNoteRequest, app: AppDep, user_id: CurrentUserIdDep) -> Note:
    changes = {key: value for key, value in request.model_dump().items() if value is not None}
    return await app.update_note(user_id, note_id, changes)


@router.delete(
    "/notes/{note_id}",
    summary="Delete note",
    description="Delete a note of the current user.",
    operation_id="deleteNote",
    status_code=204,
    responses={
        204: {"description": "Note deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Note not found"},
    },
)
async def delete_note(note_id: UUID, app: AppDep, user_id: CurrentUserIdDep) -> None:
    await app.delete_note(user_id, note_id)
