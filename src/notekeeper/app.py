from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from pymongo.asynchronous.database import AsyncDatabase

from notekeeper.config import Config
from notekeeper.core.core import Core
from notekeeper.core.modules.auth.models import AuthResult, SessionPair
from notekeeper.core.modules.note.models import Note, NoteCategory, NotePriority, NoteStats
from notekeeper.core.modules.session.models import RevokeReason
from notekeeper.core.modules.user.models import ProfileView, UserView
from notekeeper.core.pagination import PaginationResult
from notekeeper.errors import AuthenticationError


class App:
    """Facade for all application operations.

    Public operations take credentials or a refresh token; protected ones take
    the user id resolved from a verified access token.
    """

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        self._core = Core(config, database)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Sessions ===
    def authenticate(self, access_token: str) -> UUID:
        """Resolve an access token to a user id without touching the database."""
        return self._core.token_codec.verify_access(access_token)

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account and start a session for it."""
        return await self._core.services.auth.register(name, email, password)

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate user and create session."""
        return await self._core.services.auth.login(email, password)

    async def refresh(self, refresh_token: str) -> SessionPair:
        """Rotate a refresh token into a new session pair."""
        return await self._core.services.auth.refresh(refresh_token)

    async def logout(self, refresh_token: str) -> None:
        """Revoke the session behind a refresh token."""
        await self._core.services.auth.logout(refresh_token)

    async def logout_all(self, user_id: UUID) -> int:
        """Revoke all sessions of the current user."""
        return await self._core.services.auth.logout_all(user_id)

    # === Profile ===
    async def get_current_user(self, user_id: UUID) -> UserView:
        """Get current authenticated user profile."""
        user = await self._core.services.user.find_user(user_id)
        if user is None:
            # Account removed while the access token was still live
            raise AuthenticationError
        return UserView.from_domain(user)

    async def get_profile(self, user_id: UUID) -> ProfileView:
        """Get current user profile with the number of live sessions."""
        user = await self.get_current_user(user_id)
        active_sessions = await self._core.services.session.count_active(user_id)
        return ProfileView(**user.model_dump(), active_sessions=active_sessions)

    async def update_profile(self, user_id: UUID, name: str | None, email: str | None) -> UserView:
        user = await self._core.services.user.update_profile(user_id, name, email)
        return UserView.from_domain(user)

    async def change_password(self, user_id: UUID, current_password: str, new_password: str) -> None:
        """Change password and end every existing session of the user."""
        await self._core.services.user.change_password(user_id, current_password, new_password)
        await self._core.services.session.revoke_all(user_id, RevokeReason.PASSWORD_CHANGE)

    # === Notes ===
    async def get_notes(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        category: NoteCategory | None = None,
        priority: NotePriority | None = None,
        completed: bool | None = None,
    ) -> PaginationResult[Note]:
        """Get paginated notes of the current user, optionally filtered."""
        return await self._core.services.note.list_notes(user_id, page, limit, search, category, priority, completed)

    async def get_note(self, user_id: UUID, note_id: UUID) -> Note:
        return await self._core.services.note.get_note(user_id, note_id)

    async def create_note(
        self,
        user_id: UUID,
        title: str,
        content: str,
        category: NoteCategory,
        priority: NotePriority,
        tags: list[str],
        is_completed: bool,
    ) -> Note:
        return await self._core.services.note.create_note(
            user_id, title, content, category, priority, tags, is_completed
        )

    async def update_note(self, user_id: UUID, note_id: UUID, changes: dict[str, Any]) -> Note:
        """Update specific note fields (partial update)."""
        return await self._core.services.note.update_note(user_id, note_id, changes)

    async def delete_note(self, user_id: UUID, note_id: UUID) -> None:
        await self._core.services.note.delete_note(user_id, note_id)

    async def get_note_stats(self, user_id: UUID) -> NoteStats:
        return await self._core.services.note.get_stats(user_id)
