"""ORM models. Importing this package registers every table with Base.metadata."""

from marketplace.models.enums import (
    AvailabilityStatus,
    ExperienceLevel,
    InterestStatus,
    ProjectStatus,
    UserRole,
)
from marketplace.models.project import Message, Project, ProjectInterest
from marketplace.models.user import Profile, User

__all__ = [
    "AvailabilityStatus",
    "ExperienceLevel",
    "InterestStatus",
    "Message",
    "Profile",
    "Project",
    "ProjectInterest",
    "ProjectStatus",
    "User",
    "UserRole",
]
