from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from notekeeper.core.core import Service
from notekeeper.core.db import store_errors
from notekeeper.core.modules.session.errors import (
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    RefreshTokenReusedError,
)
from notekeeper.core.modules.session.models import (
    RefreshSession,
    RefreshToken,
    RevokeReason,
    generate_refresh_token,
    hash_refresh_token,
)
from notekeeper.errors import StoreUnavailableError
from notekeeper.utils import now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Persists refresh sessions and rotates them (single use, with reuse detection)."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("refresh_sessions")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        # Unique index for token_hash (lookup on refresh/logout)
        await self._collection.create_index([("token_hash", 1)], unique=True)
        # Compound index for revoking all of a user's sessions
        await self._collection.create_index([("user_id", 1), ("revoked", 1)])
        # TTL index removes records once expires_at has passed
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    @property
    def ttl(self) -> timedelta:
        return timedelta(days=self.core.config.refresh_token_ttl_days)

    async def issue(self, user_id: UUID, family_id: UUID | None = None) -> tuple[RefreshToken, RefreshSession]:
        """Create a new session and return its raw token.

        This is the only place the raw token exists server-side.
        """
        raw_token = generate_refresh_token()
        session_id = uuid4()
        created_at = now()
        session = RefreshSession(
            id=session_id,
            user_id=user_id,
            family_id=family_id or session_id,
            token_hash=hash_refresh_token(raw_token),
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        with store_errors("issue_session"):
            await self._collection.insert_one(session.to_mongo())

        logger.debug("session_issued", user_id=user_id, session_id=session.id, family_id=session.family_id)
        return raw_token, session

    async def rotate(self, raw_token: str) -> tuple[RefreshToken, RefreshSession]:
        """Consume a refresh token and issue its successor.

        The successor is stored first, then the presented session is revoked and
        linked to it by a single conditional update. A store failure before that
        update leaves the presented token usable. Of two concurrent calls with the
        same token exactly one update matches; the loser discards its successor
        and triggers reuse handling.

        Raises:
            RefreshTokenNotFoundError: No session has this token
            RefreshTokenExpiredError: The session is past its expiry
            RefreshTokenReusedError: The session was already revoked
        """
        token_hash = hash_refresh_token(raw_token)
        with store_errors("find_session"):
            doc = await self._collection.find_one({"token_hash": token_hash})
        previous = await self._check_rotatable(doc)

        new_token, new_session = await self.issue(previous.user_id, family_id=previous.family_id)
        current_time = now()
        try:
            with store_errors("rotate_session"):
                consumed = await self._collection.find_one_and_update(
                    {"_id": previous.id, "revoked": False, "expires_at": {"$gt": current_time}},
                    {"$set": {**self._revocation(RevokeReason.ROTATED), "replaced_by": new_session.id}},
                )
        except StoreUnavailableError:
            await self._discard(new_session.id)
            raise

        if consumed is None:
            # Lost a race with another rotation, a logout or expiry
            await self._discard(new_session.id)
            with store_errors("find_session"):
                doc = await self._collection.find_one({"_id": previous.id})
            await self._check_rotatable(doc)
            raise RefreshTokenExpiredError

        logger.info(
            "session_rotated",
            user_id=previous.user_id,
            family_id=previous.family_id,
            previous_session_id=previous.id,
            session_id=new_session.id,
        )
        return new_token, new_session

    async def _check_rotatable(self, doc: dict[str, Any] | None) -> RefreshSession:
        """Return the session if it can be rotated, otherwise raise the matching error."""
        if doc is None:
            raise RefreshTokenNotFoundError

        session = RefreshSession.model_validate(doc)
        if session.revoked:
            revoked_count = await self.revoke_all(session.user_id, RevokeReason.REUSE)
            logger.warning(
                "refresh_token_reuse_detected",
                user_id=session.user_id,
                session_id=session.id,
                family_id=session.family_id,
                original_revoke_reason=session.revoked_reason,
                revoked_sessions=revoked_count,
            )
            raise RefreshTokenReusedError
        if session.expires_at <= now():
            raise RefreshTokenExpiredError
        return session

    async def _discard(self, session_id: UUID) -> None:
        """Remove a successor that was never handed out."""
        with store_errors("discard_session"):
            await self._collection.delete_one({"_id": session_id})

    async def revoke(self, raw_token: str, reason: RevokeReason = RevokeReason.LOGOUT) -> None:
        """Revoke the session owning this token. Unknown or already revoked tokens are ignored."""
        with store_errors("revoke_session"):
            result = await self._collection.update_one(
                {"token_hash": hash_refresh_token(raw_token), "revoked": False},
                {"$set": self._revocation(reason)},
            )
        if result.modified_count:
            logger.info("session_revoked", reason=reason)

    async def revoke_all(self, user_id: UUID, reason: RevokeReason = RevokeReason.LOGOUT_ALL) -> int:
        """Revoke every active session of a user and return how many were revoked."""
        with store_errors("revoke_all_sessions"):
            result = await self._collection.update_many(
                {"user_id": user_id, "revoked": False},
                {"$set": self._revocation(reason)},
            )
        logger.info("sessions_revoked_all", user_id=user_id, reason=reason, count=result.modified_count)
        return int(result.modified_count)

    async def count_active(self, user_id: UUID) -> int:
        """Count sessions of a user that are neither revoked nor expired."""
        with store_errors("count_sessions"):
            return await self._collection.count_documents(
                {"user_id": user_id, "revoked": False, "expires_at": {"$gt": now()}}
            )

    @staticmethod
    def _revocation(reason: RevokeReason) -> dict[str, datetime | RevokeReason | bool]:
        return {"revoked": True, "revoked_at": now(), "revoked_reason": reason}
