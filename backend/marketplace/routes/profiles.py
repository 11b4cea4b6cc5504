"""
Marketplace Backend: Profile Routes
===================================

What:  Public profile pages and the onboarding/profile editor.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.models import User
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.user import ProfileRead, ProfileUpdate
from marketplace.security import get_current_user
from marketplace.services.profile_service import profile_service

router = APIRouter(prefix="/api", tags=["Profiles"])


@router.get(
    "/profiles/{user_id}",
    response_model=ProfileRead,
    responses={404: {"description": "Profile not found", "model": ErrorResponse}},
    summary="Get a user's profile",
)
async def get_profile(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    profile = await profile_service.get_profile(db, user_id)
    return ProfileRead.model_validate(profile)


@router.put(
    "/profiles",
    response_model=ProfileRead,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
    },
    summary="Create or update the signed-in user's profile",
    description=(
        "The first call creates the profile (role defaults to client). "
        "Later calls change only the fields that are sent."
    ),
)
async def upsert_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    profile = await profile_service.upsert_profile(db, user.id, body)
    return ProfileRead.model_validate(profile)
