"""
Marketplace Backend: User and Profile Models
============================================

What:  ORM models for the `users` and `profiles` tables.
How:   `users.id` is the subject (`sub`) of the identity provider's access
       token, so rows are keyed by an externally assigned UUID rather than a
       database default. A profile holds the role-specific metadata and is
       one-to-one with its user.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database import Base
from marketplace.models.enums import AvailabilityStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    """
    An account known to the marketplace.

    Created lazily on the first authenticated request; the identity provider
    owns credentials, this table owns display data.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        comment="Identity provider subject",
    )
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    profile: Mapped[Optional["Profile"]] = relationship(
        back_populates="user",
        uselist=False,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class Profile(Base):
    """
    Role-specific metadata for a user.

    `role` decides which half of the marketplace the user acts on: clients
    post projects, developers express interest in them.
    """

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.CLIENT.value,
        server_default=UserRole.CLIENT.value,
    )
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    skills: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    portfolio_links: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    experience_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    availability_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AvailabilityStatus.AVAILABLE.value,
        server_default=AvailabilityStatus.AVAILABLE.value,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    user: Mapped[User] = relationship(back_populates="profile", lazy="raise")

    def __repr__(self) -> str:
        return f"<Profile(user_id={self.user_id}, role='{self.role}')>"
