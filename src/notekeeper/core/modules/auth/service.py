from uuid import UUID

import structlog

from notekeeper.core.core import Service
from notekeeper.core.modules.auth.models import AuthResult, SessionPair
from notekeeper.core.modules.session.errors import RefreshTokenError
from notekeeper.core.modules.session.models import RevokeReason, is_well_formed_refresh_token
from notekeeper.core.modules.user.models import User, UserView
from notekeeper.errors import SessionInvalidError

logger = structlog.get_logger(__name__)


class AuthService(Service):
    """Issues, rotates and revokes session pairs.

    Refresh tokens are single use: every successful refresh revokes the
    presented token and returns a new one. Presenting a revoked token again
    revokes all of the user's sessions.
    """

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and start a new session lineage."""
        user = await self.core.services.user.verify_credentials(email, password)
        return await self._start_session(user)

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account and log it in."""
        user = await self.core.services.user.create_user(name, email, password)
        return await self._start_session(user)

    async def refresh(self, raw_refresh_token: str) -> SessionPair:
        """Exchange a refresh token for a new session pair.

        Every failure is reported as the same SessionInvalidError.
        """
        if not is_well_formed_refresh_token(raw_refresh_token):
            raise SessionInvalidError

        try:
            new_refresh_token, session = await self.core.services.session.rotate(raw_refresh_token)
        except RefreshTokenError as exc:
            logger.info("refresh_rejected", reason=type(exc).__name__)
            raise SessionInvalidError from exc

        if await self.core.services.user.find_user(session.user_id) is None:
            await self.core.services.session.revoke_all(session.user_id)
            raise SessionInvalidError

        access_token = self.core.token_codec.issue_access(session.user_id)
        return SessionPair(access_token=access_token, refresh_token=new_refresh_token)

    async def logout(self, raw_refresh_token: str) -> None:
        """Revoke the session behind a refresh token. Never fails for stale or unknown tokens."""
        if not is_well_formed_refresh_token(raw_refresh_token):
            return
        await self.core.services.session.revoke(raw_refresh_token, RevokeReason.LOGOUT)

    async def logout_all(self, user_id: UUID) -> int:
        """Revoke every session of the user."""
        return await self.core.services.session.revoke_all(user_id, RevokeReason.LOGOUT_ALL)

    async def _start_session(self, user: User) -> AuthResult:
        refresh_token, _ = await self.core.services.session.issue(user.id)
        access_token = self.core.token_codec.issue_access(user.id)
        logger.info("session_started", user_id=user.id)
        return AuthResult(user=UserView.from_domain(user), access_token=access_token, refresh_token=refresh_token)
