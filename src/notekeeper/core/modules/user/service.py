from typing import Any
from uuid import UUID

import bcrypt
import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from notekeeper.core.core import Service
from notekeeper.core.db import store_errors
from notekeeper.core.modules.user.models import User
from notekeeper.core.modules.user.validators import MAX_PASSWORD_BYTES, normalize_email, validate_name, validate_password
from notekeeper.errors import InvalidCredentialsError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

# Checked against when the email is unknown, so both failure paths cost one bcrypt round
_DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"notekeeper-dummy-password", bcrypt.gensalt())


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str | bytes) -> bool:
    """Compare a plaintext password with a bcrypt hash."""
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    if isinstance(password_hash, str):
        password_hash = password_hash.encode("utf-8")
    return bcrypt.checkpw(encoded, password_hash)


class UserService(Service):
    """Manages user accounts and verifies credentials."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")

    async def find_user(self, user_id: UUID) -> User | None:
        """Get user by ID, or None if it does not exist."""
        with store_errors("find_user"):
            doc = await self._collection.find_one({"_id": user_id})
        return User.model_validate(doc) if doc else None

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        user = await self.find_user(user_id)
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return user

    async def find_user_by_email(self, email: str) -> User | None:
        with store_errors("find_user_by_email"):
            doc = await self._collection.find_one({"email": email.strip().lower()})
        return User.model_validate(doc) if doc else None

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Create user with hashed password."""
        name = validate_name(name)
        email = normalize_email(email)
        validate_password(password)

        if await self.find_user_by_email(email) is not None:
            raise ValidationError("User with this email already exists")

        user = User(name=name, email=email, password_hash=hash_password(password))
        with store_errors("create_user"):
            try:
                await self._collection.insert_one(user.to_mongo())
            except DuplicateKeyError as exc:
                # Lost a race with a concurrent registration for the same email
                raise ValidationError("User with this email already exists") from exc

        logger.info("user_registered", user_id=user.id)
        return user

    async def verify_credentials(self, email: str, password: str) -> User:
        """Return the user owning these credentials.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        if not email or not password:
            raise InvalidCredentialsError

        user = await self.find_user_by_email(email)
        if user is None:
            check_password(password, _DUMMY_PASSWORD_HASH)
            logger.info("login_failed", reason="credentials")
            raise InvalidCredentialsError

        if not check_password(password, user.password_hash):
            logger.info("login_failed", reason="credentials")
            raise InvalidCredentialsError

        return user

    async def update_profile(self, user_id: UUID, name: str | None = None, email: str | None = None) -> User:
        """Update display name and/or email. None values are left unchanged."""
        user = await self.get_user(user_id)
        changes: dict[str, Any] = {}

        if name is not None:
            changes["name"] = validate_name(name)

        if email is not None:
            email = normalize_email(email)
            if email != user.email:
                existing = await self.find_user_by_email(email)
                if existing is not None and existing.id != user_id:
                    raise ValidationError("User with this email already exists")
                changes["email"] = email

        if not changes:
            return user

        with store_errors("update_profile"):
            try:
                await self._collection.update_one({"_id": user_id}, {"$set": changes})
            except DuplicateKeyError as exc:
                raise ValidationError("User with this email already exists") from exc

        return user.model_copy(update=changes)

    async def change_password(self, user_id: UUID, current_password: str, new_password: str) -> None:
        """Change user password after verifying the current one."""
        user = await self.get_user(user_id)
        if not check_password(current_password, user.password_hash):
            raise ValidationError("Invalid current password")

        validate_password(new_password)
        with store_errors("change_password"):
            await self._collection.update_one({"_id": user_id}, {"$set": {"password_hash": hash_password(new_password)}})

    async def on_start(self) -> None:
        """Create indexes."""
        await self._collection.create_index([("email", 1)], unique=True)
        logger.debug("user_service_started")
