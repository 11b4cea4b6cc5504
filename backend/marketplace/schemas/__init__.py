"""
Pydantic request/response schemas (the API contract).

Separate from the ORM models so the wire format (camelCase, embedded user
summaries) can evolve independently of the tables.
"""

from marketplace.schemas.common import CamelModel, ErrorResponse, HealthResponse, InputModel
from marketplace.schemas.project import (
    InterestCreate,
    InterestRead,
    InterestStatusUpdate,
    InterestWithDeveloper,
    MessageCreate,
    MessageRead,
    MessageWithSender,
    ProjectCreate,
    ProjectRead,
    ProjectSort,
    ProjectUpdate,
    ProjectWithClient,
)
from marketplace.schemas.user import (
    ProfileRead,
    ProfileUpdate,
    SenderSummary,
    UserRead,
    UserSummary,
    UserUpdate,
)

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    "InputModel",
    "InterestCreate",
    "InterestRead",
    "InterestStatusUpdate",
    "InterestWithDeveloper",
    "MessageCreate",
    "MessageRead",
    "MessageWithSender",
    "ProfileRead",
    "ProfileUpdate",
    "ProjectCreate",
    "ProjectRead",
    "ProjectSort",
    "ProjectUpdate",
    "ProjectWithClient",
    "SenderSummary",
    "UserRead",
    "UserSummary",
    "UserUpdate",
]
