"""
Marketplace Backend: Profile Service
====================================

What:  Reads and upserts the role-specific profile of a user.
Who:   /api/profiles routes and the `require_role` security dependency.

A user may exist without a profile (signed in but never finished onboarding).
The first PUT creates the row with role `client` unless another role is
sent; later PUTs patch only the fields present in the body.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.exceptions import NotFoundError
from marketplace.models import Profile, UserRole
from marketplace.models.user import utcnow
from marketplace.schemas.user import ProfileUpdate
from marketplace.services.errors import database_errors

logger = logging.getLogger(__name__)


class ProfileService:

    async def find_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[Profile]:
        with database_errors("retrieve the profile"):
            result = await db.execute(select(Profile).where(Profile.user_id == user_id))
            return result.scalar_one_or_none()

    async def get_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Profile:
        profile = await self.find_profile(db, user_id)
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=str(user_id))
        return profile

    async def upsert_profile(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        updates: ProfileUpdate,
    ) -> Profile:
        """
        Creates or patches the caller's profile.

        Raises:
            ConflictError: a concurrent request created the profile first
        """
        changes = updates.model_dump(exclude_unset=True)
        profile = await self.find_profile(db, user_id)

        if profile is None:
            changes.setdefault("role", UserRole.CLIENT.value)
            profile = Profile(user_id=user_id, **changes)
            db.add(profile)
            logger.info("Creating %s profile for user %s", profile.role, user_id)
        else:
            for field, value in changes.items():
                setattr(profile, field, value)
            profile.updated_at = utcnow()

        with database_errors(
            "save the profile",
            conflict_message="Your profile was modified concurrently. Please retry.",
        ):
            await db.flush()
        return profile


profile_service = ProfileService()
