from fastapi import APIRouter
from pydantic import EmailStr, Field

from notekeeper.core.modules.auth.models import AuthResult, SessionPair
from notekeeper.core.modules.user.models import UserView
from notekeeper.web.deps import AppDep, CurrentUserIdDep
from notekeeper.web.models import Password, RequestModel, ResponseModel
from notekeeper.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class RegisterRequest(RequestModel):
    """Registration request."""

    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    email: EmailStr = Field(..., description="Email address, used to log in")
    password: Password = Field(..., min_length=6, max_length=72, description="Password")


class LoginRequest(RequestModel):
    """Authentication request."""

    email: str = Field(..., min_length=1, max_length=254, description="Email address")
    password: Password = Field(..., min_length=1, max_length=128, description="Password")


class RefreshTokenRequest(RequestModel):
    """Request carrying a refresh token."""

    refresh_token: str = Field(..., min_length=1, max_length=512, description="Refresh token from the last login or refresh")


class CurrentUserResponse(ResponseModel):
    user: UserView


class LogoutAllResponse(ResponseModel):
    revoked: int = Field(..., description="Number of sessions revoked", ge=0)


@router.post(
    "/auth/register",
    summary="Register",
    description="Create an account and receive an access token and a refresh token.",
    operation_id="register",
    status_code=201,
    responses={
        201: {"description": "Account created"},
        400: {"model": ErrorResponse, "description": "Invalid data or email already registered"},
    },
)
async def register(data: RegisterRequest, app: AppDep) -> AuthResult:
    return await app.register(data.name, data.email, data.password)


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with email and password to receive an access token and a refresh token.",
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
async def login(data: LoginRequest, app: AppDep) -> AuthResult:
    return await app.login(data.email, data.password)


@router.post(
    "/auth/refresh",
    summary="Refresh session",
    description=(
        "Exchange a refresh token for a new access token and a new refresh token. "
        "The presented refresh token is consumed; the client must store the returned one."
    ),
    operation_id="refreshToken",
    responses={
        200: {"description": "New session pair"},
        401: {"model": ErrorResponse, "description": "Refresh token invalid, expired or revoked"},
    },
)
async def refresh(data: RefreshTokenRequest, app: AppDep) -> SessionPair:
    return await app.refresh(data.refresh_token)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Revoke the session behind a refresh token. Succeeds even if the token is unknown or already revoked.",
    operation_id="logout",
    status_code=204,
    responses={204: {"description": "Logged out"}},
)
async def logout(data: RefreshTokenRequest, app: AppDep) -> None:
    await app.logout(data.refresh_token)


@router.post(
    "/auth/logout-all",
    summary="End all sessions",
    description="Revoke every refresh token of the current user. Access tokens already issued stay valid until they expire.",
    operation_id="logoutAll",
    responses={
        200: {"description": "Sessions revoked"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout_all(app: AppDep, user_id: CurrentUserIdDep) -> LogoutAllResponse:
    return LogoutAllResponse(revoked=await app.logout_all(user_id))


@router.get(
    "/auth/me",
    summary="Get current user",
    description="Get the user owning the access token.",
    operation_id="getMe",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def me(app: AppDep, user_id: CurrentUserIdDep) -> CurrentUserResponse:
    return CurrentUserResponse(user=await app.get_current_user(user_id))
