"""
User and Profile schemas.

Read models mirror the database rows in camelCase. Update models are fully
optional; services apply only the fields a client actually sent
(`model_dump(exclude_unset=True)`), so an omitted field is left alone while an
explicit null clears a nullable column.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from marketplace.models.enums import AvailabilityStatus, ExperienceLevel, UserRole
from marketplace.schemas.common import CamelModel, InputModel

MAX_SKILLS = 50
MAX_SKILL_LENGTH = 50


# ══════════════════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════════════════


class UserRead(CamelModel):
    id: uuid.UUID
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """The slice of a user embedded in project and interest listings."""

    id: uuid.UUID
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SenderSummary(CamelModel):
    """The slice of a user embedded in message listings."""

    id: uuid.UUID
    first_name: Optional[str] = None


class UserUpdate(InputModel):
    """Body of PUT /api/users. Email is owned by the identity provider."""

    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile_image_url: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("profile_image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        """Accepts absolute http(s) URLs and server-relative paths."""
        if v is None:
            return v
        if v.startswith(("http://", "https://")) or (v.startswith("/") and not v.startswith("//")):
            return v
        raise ValueError("Profile image URL must be an http(s) URL or a server path")


# ══════════════════════════════════════════════════════════════════════════
# Profiles
# ══════════════════════════════════════════════════════════════════════════


class ProfileRead(CamelModel):
    id: int
    user_id: uuid.UUID
    role: UserRole
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    portfolio_links: Optional[Any] = None
    experience_level: Optional[ExperienceLevel] = None
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    updated_at: Optional[datetime] = None


class ProfileUpdate(InputModel):
    """
    Body of PUT /api/profiles.

    Creates the caller's profile on first use (role defaults to client) and
    patches it afterwards.
    """

    role: Optional[UserRole] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    skills: Optional[List[str]] = None
    portfolio_links: Optional[Any] = None
    experience_level: Optional[ExperienceLevel] = None
    availability_status: Optional[AvailabilityStatus] = None

    @field_validator("role", "skills", "availability_status")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("This field cannot be null")
        return v

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Trims tags, drops blanks and duplicates (first occurrence wins)."""
        if v is None:
            return v
        seen = set()
        skills: List[str] = []
        for raw in v:
            tag = raw.strip()
            if not tag or tag in seen:
                continue
            if len(tag) > MAX_SKILL_LENGTH:
                raise ValueError(f"Skills must be at most {MAX_SKILL_LENGTH} characters")
            seen.add(tag)
            skills.append(tag)
        if len(skills) > MAX_SKILLS:
            raise ValueError(f"At most {MAX_SKILLS} skills are allowed")
        return skills
