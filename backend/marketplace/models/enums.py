"""
Enumerations shared by the ORM models and the API schemas.

Values are stored as plain strings (VARCHAR) so that adding a member never
needs a database-level enum migration.
"""

from enum import Enum


class UserRole(str, Enum):
    CLIENT = "client"
    DEVELOPER = "developer"


class ExperienceLevel(str, Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OPEN_TO_OFFERS = "open_to_offers"


class ProjectStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InterestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
