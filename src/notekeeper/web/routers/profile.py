from fastapi import APIRouter
from pydantic import EmailStr, Field

from notekeeper.core.modules.user.models import ProfileView, UserView
from notekeeper.web.deps import AppDep, CurrentUserIdDep
from notekeeper.web.models import Password, RequestModel
from notekeeper.web.openapi import ErrorResponse

router = APIRouter(tags=["profile"])


class UpdateProfileRequest(RequestModel):
    """Request to update profile fields. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=50, description="Display name")
    email: EmailStr | None = Field(None, description="Email address")


class ChangePasswordRequest(RequestModel):
    """Request to change user password."""

    current_password: Password = Field(..., min_length=1, description="Current password")
    new_password: Password = Field(..., min_length=6, max_length=72, description="New password")


@router.get(
    "/profile",
    summary="Get current user profile",
    description="Get the profile of the currently authenticated user and the number of active sessions.",
    operation_id="getCurrentUserProfile",
    responses={
        200: {"description": "Current user profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_profile(app: AppDep, user_id: CurrentUserIdDep) -> ProfileView:
    return await app.get_profile(user_id)


@router.put(
    "/profile",
    summary="Update profile",
    description="Change the display name and/or email of the current user.",
    operation_id="updateProfile",
    responses={
        200: {"description": "Updated profile"},
        400: {"model": ErrorResponse, "description": "Invalid data or email already registered"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def update_profile(request: UpdateProfileRequest, app: AppDep, user_id: CurrentUserIdDep) -> UserView:
    return await app.update_profile(user_id, request.name, request.email)


@router.post(
    "/profile/change-password",
    summary="Change password",
    description="Change the password of the current user. All refresh tokens of the user are revoked.",
    operation_id="changePassword",
    status_code=204,
    responses={
        204: {"description": "Password changed successfully"},
        400: {"model": ErrorResponse, "description": "Invalid current password or new password"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def change_password(request: ChangePasswordRequest, app: AppDep, user_id: CurrentUserIdDep) -> None:
    await app.change_password(user_id, request.current_password, request.new_password)
