"""
Marketplace Backend: User Routes
================================

What:  Account display data: name, email and profile photo.
Who:   The navigation bar (current user), profile pages and the avatar
       uploader.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.models import User
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.user import UserRead, UserUpdate
from marketplace.security import get_current_user
from marketplace.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])

AUTH_ERRORS = {401: {"description": "Not authenticated", "model": ErrorResponse}}


@router.get(
    "/users/me",
    response_model=UserRead,
    responses=AUTH_ERRORS,
    summary="Get the signed-in user",
)
async def get_me(user: User = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(user)


@router.get(
    "/users/{user_id}",
    response_model=UserRead,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user by id",
)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> UserRead:
    user = await user_service.get_user(db, user_id)
    return UserRead.model_validate(user)


@router.put(
    "/users",
    response_model=UserRead,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        **AUTH_ERRORS,
    },
    summary="Update the signed-in user's name or profile image URL",
)
async def update_user(
    body: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserRead:
    updated = await user_service.update_user(db, user, body)
    return UserRead.model_validate(updated)


@router.post(
    "/users/avatar",
    response_model=UserRead,
    responses={
        400: {"description": "Unsupported, empty or oversized image", "model": ErrorResponse},
        **AUTH_ERRORS,
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload a profile photo",
    description="Accepts a JPEG, PNG or WebP image up to 2MB as multipart field `file`.",
)
async def upload_avatar(
    file: UploadFile = File(..., description="JPEG, PNG or WebP image, max 2MB"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserRead:
    try:
        content = await file.read()
        updated = await user_service.upload_avatar(
            db,
            user,
            filename=file.filename or "",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()
    return UserRead.model_validate(updated)


@router.delete(
    "/users/avatar",
    response_model=UserRead,
    responses=AUTH_ERRORS,
    summary="Remove the profile photo",
)
async def delete_avatar(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserRead:
    updated = await user_service.remove_avatar(db, user)
    return UserRead.model_validate(updated)
