"""
Circles Backend — Shared Schema Building Blocks
=================================================

What:  Base model with the wire conventions, plus the error and health
       envelopes used by every route.
How:   CamelModel serializes snake_case attributes as camelCase and accepts
       either spelling on input. Explicit aliases (`_id`, `photoURL`) win
       over the generated ones.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every request/response body exchanged with clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Envelope for mutations that only report an outcome."""
    success: bool = True
    message: str


class ErrorResponse(CamelModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "validation_error",
            "message": "Search query must be at least 2 characters",
            "details": {"field": "query"},
            "requestId": "550e8400"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
