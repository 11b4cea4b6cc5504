"""
Marketplace Backend: Authentication Gate
========================================

What:  FastAPI dependencies that turn a bearer token into a `User` row and
       enforce the client/developer split.
How:   The identity provider signs access tokens with a shared secret; PyJWT
       checks signature, expiry, audience and (when configured) issuer. The
       `sub` claim is the user's id in our `users` table.

Dependencies:
    get_token_claims  → verified TokenClaims (401 otherwise)
    get_current_user  → User row, created on first sight
    require_role(r)   → User whose profile has role r

Usage:
    @router.post("/projects")
    async def create_project(user: User = Depends(require_role(UserRole.CLIENT))):
        ...
"""

import logging
import uuid
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.database import get_db_session
from marketplace.exceptions import AuthenticationError, PermissionDeniedError, ValidationError
from marketplace.models import User, UserRole
from marketplace.services.profile_service import profile_service
from marketplace.services.user_service import user_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(
    auto_error=False,
    description="Access token issued by the identity provider. Format: Bearer <token>",
)


class TokenClaims(BaseModel):
    sub: uuid.UUID
    email: Optional[str] = None
    exp: int


def decode_token(token: str) -> TokenClaims:
    """
    Raises:
        AuthenticationError: expired, badly signed, wrong audience/issuer,
                             or a subject that is not a UUID
    """
    options: Dict[str, Any] = {"require": ["exp", "sub"]}
    if not settings.jwt_audience:
        options["verify_aud"] = False

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            issuer=settings.jwt_issuer or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected access token: %s", e)
        raise AuthenticationError(message="Invalid token")

    try:
        return TokenClaims(**payload)
    except PydanticValidationError:
        logger.info("Rejected access token with malformed subject")
        raise AuthenticationError(message="Invalid token")


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None:
        raise AuthenticationError()
    return decode_token(credentials.credentials)


async def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await user_service.get_or_create(db, claims.sub, claims.email)


def require_role(role: UserRole):
    """
    Builds a dependency admitting only users whose profile has `role`.

    A user who never completed onboarding has no profile; they are told to
    finish it (400) rather than being refused outright.
    """
    role = UserRole(role)

    async def dependency(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ) -> User:
        profile = await profile_service.find_profile(db, user.id)
        if profile is None:
            raise ValidationError(message="Complete your profile first", field="role")
        if profile.role != role.value:
            raise PermissionDeniedError(message=f"Only {role.value}s can perform this action")
        return user

    return dependency
