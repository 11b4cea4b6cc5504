"""
Project, Interest and Message schemas.

What:  API contracts for the project board and everything hanging off a
       project (proposals and conversation).
How:   Listing responses embed a summary of the related user (`client`,
       `developer`, `sender`), loaded eagerly by the services. Create/update
       models validate shape; cross-field rules such as budget ordering live
       in the services because they need the stored row for partial updates.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from marketplace.models.enums import InterestStatus, ProjectStatus
from marketplace.schemas.common import MAX_INTEGER, CamelModel, InputModel
from marketplace.schemas.user import SenderSummary, UserSummary

MAX_MESSAGE_LENGTH = 5000


# ══════════════════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════════════════


class ProjectSort(str, Enum):
    """Orderings accepted by GET /api/projects?sort=..."""

    NEWEST = "newest"
    OLDEST = "oldest"
    BUDGET_HIGH = "budget_high"
    BUDGET_LOW = "budget_low"


class ProjectRead(CamelModel):
    id: int
    client_id: uuid.UUID
    title: str
    category: str
    description: str
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    deadline: Optional[datetime] = None
    status: ProjectStatus
    created_at: Optional[datetime] = None


class ProjectWithClient(ProjectRead):
    """A project as shown on the board and on its detail page."""

    client: Optional[UserSummary] = None


class ProjectCreate(InputModel):
    """
    Body of POST /api/projects.

    The owner comes from the access token and the status always starts as
    `open`, so neither is accepted here.
    """

    title: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=20000)
    budget_min: Optional[int] = Field(
        default=None, ge=1, le=MAX_INTEGER, description="Budget must be at least $1"
    )
    budget_max: Optional[int] = Field(
        default=None, ge=1, le=MAX_INTEGER, description="Budget must be at least $1"
    )
    deadline: Optional[datetime] = None


class ProjectUpdate(InputModel):
    """Body of PATCH /api/projects/{id}. Only the owner may send it."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=20000)
    budget_min: Optional[int] = Field(default=None, ge=1, le=MAX_INTEGER)
    budget_max: Optional[int] = Field(default=None, ge=1, le=MAX_INTEGER)
    deadline: Optional[datetime] = None
    status: Optional[ProjectStatus] = None

    @field_validator("title", "category", "description", "status")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("This field cannot be null")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Interests
# ══════════════════════════════════════════════════════════════════════════


class InterestRead(CamelModel):
    id: int
    project_id: int
    developer_id: uuid.UUID
    message: str
    status: InterestStatus
    created_at: Optional[datetime] = None


class InterestWithDeveloper(InterestRead):
    developer: Optional[UserSummary] = None


class InterestCreate(InputModel):
    """Body of POST /api/projects/{id}/interests."""

    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)


class InterestStatusUpdate(InputModel):
    """Body of PATCH /api/projects/{id}/interests/{interestId}."""

    status: InterestStatus

    @field_validator("status")
    @classmethod
    def decided_only(cls, v: InterestStatus) -> InterestStatus:
        if v == InterestStatus.PENDING:
            raise ValueError("Status must be 'accepted' or 'rejected'")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Messages
# ══════════════════════════════════════════════════════════════════════════


class MessageRead(CamelModel):
    id: int
    project_id: int
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    read: bool = False
    created_at: Optional[datetime] = None


class MessageWithSender(MessageRead):
    sender: Optional[SenderSummary] = None


class MessageCreate(InputModel):
    """Body of POST /api/projects/{id}/messages."""

    receiver_id: uuid.UUID
    content: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
