from typing import Annotated, cast
from uuid import UUID

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notekeeper.app import App
from notekeeper.errors import AuthenticationError

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_current_user_id(
    app: Annotated[App, Depends(get_app)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> UUID:
    """Verify the access token from the Authorization Bearer header.

    Stateless: the token signature and expiry are checked, the database is not.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    user_id = app.authenticate(credentials.credentials)
    structlog.contextvars.bind_contextvars(user_id=str(user_id))
    return user_id


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
CurrentUserIdDep = Annotated[UUID, Depends(get_current_user_id)]
