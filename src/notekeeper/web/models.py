from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

# Passwords are taken exactly as typed, surrounding spaces included
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


class RequestModel(BaseModel):
    """Base for request bodies: camelCase keys (snake_case also accepted), unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class ResponseModel(BaseModel):
    """Base for response bodies serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
