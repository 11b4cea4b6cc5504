"""
Marketplace Backend: Project, Interest and Message Models
=========================================================

What:  ORM models for `projects`, `project_interests` and `messages`.

Table Design:
    - Integer primary keys; projects appear in URLs as /projects/<id>
    - Budgets are whole currency units, both optional
    - status columns are short VARCHARs holding enum values
    - (project_id, developer_id) is unique: one proposal per developer
    - messages are indexed by (project_id, created_at) for the polling query

Relationships to User are declared with lazy="raise" so that a missing
eager load fails loudly instead of issuing hidden I/O under asyncio.
Queries that need the embedded user ask for it with selectinload().
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database import Base
from marketplace.models.enums import InterestStatus, ProjectStatus
from marketplace.models.user import User, utcnow


class Project(Base):
    """A piece of work posted by a client."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    budget_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    budget_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.OPEN.value,
        server_default=ProjectStatus.OPEN.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    client: Mapped[User] = relationship(lazy="raise")

    __table_args__ = (
        Index("idx_projects_created_at", created_at.desc()),
        Index("idx_projects_client_id", "client_id"),
        Index("idx_projects_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', status='{self.status}')>"


class ProjectInterest(Base):
    """A developer's proposal on a project."""

    __tablename__ = "project_interests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    developer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InterestStatus.PENDING.value,
        server_default=InterestStatus.PENDING.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    developer: Mapped[User] = relationship(lazy="raise")

    __table_args__ = (
        UniqueConstraint(
            "project_id", "developer_id", name="uq_project_interests_project_developer"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectInterest(id={self.id}, project_id={self.project_id}, "
            f"status='{self.status}')>"
        )


class Message(Base):
    """A message between two users in the context of a project."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    sender: Mapped[User] = relationship(foreign_keys=[sender_id], lazy="raise")

    __table_args__ = (
        Index("idx_messages_project_created_at", "project_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, project_id={self.project_id})>"
