"""
Marketplace Backend: Shared Schema Building Blocks
==================================================

What:  The camelCase base model plus the error and health response shapes.
How:   `CamelModel` generates camelCase aliases for every snake_case field.
       Requests may use either spelling (populate_by_name); responses are
       always emitted in camelCase because FastAPI serializes by alias.
       `from_attributes` lets schemas be built straight from ORM rows, which
       is where snake_case columns turn into camelCase JSON.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Largest value a PostgreSQL `integer` column (ids, budgets) can hold
MAX_INTEGER = 2_147_483_647


class CamelModel(BaseModel):
    """Base for every API schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InputModel(CamelModel):
    """
    Base for request bodies.

    Surrounding whitespace is never significant, and enum fields hold their
    plain string values so a dump can be assigned straight onto ORM columns.
    """

    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)


class ErrorResponse(CamelModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "forbidden",
            "message": "You can only update your own projects",
            "requestId": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    """Service and dependency status returned by GET /health."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Object storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
