from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notekeeper.core.db import MongoModel
from notekeeper.utils import now


class User(MongoModel):
    """User domain model with credentials."""

    name: str
    email: str  # stored lower-cased, unique
    password_hash: str  # bcrypt hash
    created_at: datetime = Field(default_factory=now)


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    created_at: datetime = Field(..., description="Account creation time")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


class ProfileView(UserView):
    """Profile of the current user with session overview."""

    active_sessions: int = Field(..., description="Sessions that are neither revoked nor expired", ge=0)
