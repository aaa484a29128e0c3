"""
Munich Weekly Backend — Shared Pydantic Schemas
================================================

What:  Base model and envelope types shared by every resource schema.

Wire format:
    The API speaks camelCase JSON (submissionId, voteCount, ...). Python
    code keeps snake_case attributes; CamelModel's alias generator bridges
    the two. Request bodies accept either spelling (populate_by_name).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, ORM attribute loading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable outcome")


class UploadResponse(CamelModel):
    """Result of an image upload (submission image, gallery cover, promotion image)."""
    success: bool = Field(default=True)
    url: Optional[str] = Field(default=None, description="Public URL of the stored file")
    message: str = Field(default="File uploaded successfully")


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx answer.

    Example:
        {
            "error": "validation_error",
            "message": "Not in valid date range",
            "details": {"field": "issueId"},
            "request_id": "3f2a9c1d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class TimestampedModel(CamelModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
