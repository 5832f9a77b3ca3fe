from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notekeeper.core.modules.user.models import UserView


class SessionPair(BaseModel):
    """Access and refresh tokens handed to the client together."""

    access_token: str = Field(..., description="Short-lived bearer token for API requests")
    refresh_token: str = Field(
        ..., description="Single-use token for obtaining a new pair; replaces the previously stored one"
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthResult(SessionPair):
    """Outcome of login or registration."""

    user: UserView = Field(..., description="Authenticated user")
