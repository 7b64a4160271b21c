"""
ChatSphere Backend: User Route Handlers
=======================================

What:  /api/users: the signed-in user's profile, avatar, password and
       account, plus public profile lookup by id.
How:   Delegates to UserService. `/me`, `/profile`, `/avatar`, `/account`
       and `/password` are declared before `/{user_id}` so they are not
       captured by the path parameter.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.database import get_db_session
from chatsphere.dependencies import get_current_user
from chatsphere.models.user import User
from chatsphere.schemas.common import APIResponse, ErrorResponse
from chatsphere.schemas.user import (
    AvatarData,
    ChangePasswordRequest,
    UpdateProfileRequest,
    UserData,
    UserOut,
)
from chatsphere.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me", response_model=APIResponse[UserData], summary="Current user")
async def get_me(current_user: User = Depends(get_current_user)) -> APIResponse[UserData]:
    return APIResponse(
        message="User fetched successfully",
        data=UserData(user=UserOut.model_validate(current_user)),
    )


@router.put(
    "/profile",
    response_model=APIResponse[UserData],
    responses={400: {"description": "Nothing to update or invalid name", "model": ErrorResponse}},
    summary="Update name and/or avatar URL",
)
async def update_profile(
    body: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[UserData]:
    user = await user_service.update_profile(
        db=db, user=current_user, name=body.name, avatar=body.avatar
    )
    return APIResponse(message="Profile updated successfully", data=UserData(user=user))


@router.put(
    "/avatar",
    response_model=APIResponse[AvatarData],
    responses={
        400: {"description": "Missing, unsupported or oversized image", "model": ErrorResponse},
        503: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Upload a new avatar image",
    description="Multipart upload, field `avatar`. JPEG, PNG or WebP, at most 5MB.",
)
async def update_avatar(
    avatar: Optional[UploadFile] = File(default=None, description="Avatar image"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[AvatarData]:
    content = None
    content_type = None
    if avatar is not None:
        try:
            content = await avatar.read()
            content_type = avatar.content_type
        finally:
            await avatar.close()
        logger.info(
            "Received avatar upload: filename=%s, size=%d bytes",
            avatar.filename or "unknown",
            len(content),
        )

    data = await user_service.update_avatar(
        db=db, user=current_user, content=content, content_type=content_type
    )
    return APIResponse(message="Avatar updated successfully", data=data)


@router.delete(
    "/account",
    response_model=APIResponse[None],
    summary="Delete the signed-in account and all its data",
)
async def delete_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await user_service.delete_account(db=db, user=current_user)
    return APIResponse(message="Account deleted successfully")


@router.put(
    "/password",
    response_model=APIResponse[None],
    responses={
        400: {"description": "Missing or too short password", "model": ErrorResponse},
        401: {"description": "Current password is incorrect", "model": ErrorResponse},
    },
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await user_service.change_password(
        db=db,
        user=current_user,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return APIResponse(message="Password changed successfully")


@router.get(
    "/{user_id}",
    response_model=APIResponse[UserData],
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public profile of a user",
)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[UserData]:
    user = await user_service.get_user(db=db, user_id=user_id)
    return APIResponse(message="User fetched successfully", data=UserData(user=user))
