"""
Marketplace Backend: User Service
=================================

What:  Reads and updates user rows, provisions them on first sign-in and
       orchestrates avatar uploads.
Who:   Called by the security dependencies and by the /api/users routes.

Provisioning:
    The identity provider owns accounts; this service mirrors each one into
    `users` the first time its token is seen. Two concurrent first requests
    can race on the insert. The loser's IntegrityError is absorbed by rolling
    back and reading the winner's row.

Avatar Flow (POST /api/users/avatar):
    validate & store image (FileService) → set profile_image_url → flush
    A failed flush removes the stored file again.
"""

import logging
import time
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.exceptions import MarketplaceError, NotFoundError
from marketplace.models import User
from marketplace.models.user import utcnow
from marketplace.schemas.user import UserUpdate
from marketplace.services.errors import database_errors
from marketplace.services.file_service import file_service

logger = logging.getLogger(__name__)


class UserService:
    """Stateless; receives the request's session on every call."""

    async def find_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        with database_errors("retrieve the user"):
            result = await db.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError: no user with that id (→ 404 "User not found")
        """
        user = await self.find_user(db, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def get_or_create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        email: Optional[str] = None,
    ) -> User:
        """
        Returns the user row for an authenticated subject, inserting it if needed.

        The email claim is refreshed when the provider reports a new one.
        """
        user = await self.find_user(db, user_id)
        if user is not None:
            if email and user.email != email:
                user.email = email
                user.updated_at = utcnow()
                with database_errors("update the user"):
                    await db.flush()
            return user

        user = User(id=user_id, email=email)
        db.add(user)
        try:
            await db.flush()
            logger.info("Provisioned user %s", user_id)
            return user
        except IntegrityError:
            await db.rollback()
            logger.info("User %s was provisioned concurrently; reloading", user_id)
        return await self.get_user(db, user_id)

    async def update_user(self, db: AsyncSession, user: User, updates: UserUpdate) -> User:
        """Applies only the fields present in the request body."""
        for field, value in updates.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        with database_errors("update the user"):
            await db.flush()
        return user

    async def upload_avatar(
        self,
        db: AsyncSession,
        user: User,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> User:
        """
        Stores a new avatar and points the user's profile image at it.

        The URL carries a millisecond timestamp so that browsers and CDNs do
        not keep showing the previous image from the same path.

        Raises:
            ValidationError: unsupported type, empty or oversized file
            FileStorageError: the object store could not be written
        """
        staged = await file_service.stage_avatar(
            user_id=user.id,
            filename=filename,
            content=content,
            content_length=content_length,
        )
        try:
            user.profile_image_url = (
                f"/api/files/{staged.relative_path}?t={int(time.time() * 1000)}"
            )
            user.updated_at = utcnow()
            with database_errors("save the profile photo"):
                await db.flush()
        except MarketplaceError:
            # The previous avatar is still in place for the unchanged row
            await file_service.discard_avatar(staged)
            raise

        await file_service.publish_avatar(staged)
        logger.info("Avatar updated for user %s: %s", user.id, staged.relative_path)
        return user

    async def remove_avatar(self, db: AsyncSession, user: User) -> User:
        """Deletes every stored avatar for the user and clears the URL."""
        removed = await file_service.delete_avatars(user.id)
        user.profile_image_url = None
        user.updated_at = utcnow()
        with database_errors("remove the profile photo"):
            await db.flush()
        logger.info("Removed %d avatar file(s) for user %s", removed, user.id)
        return user


user_service = UserService()
