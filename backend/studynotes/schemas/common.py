"""
StudyNotes Backend — Shared Schema Base & Error/Health Models
===============================================================

What:  The camelCase base model every API schema inherits, plus the error and
       health response bodies shared by all routers.
Why:   The browser client speaks camelCase (`createdAt`, `fileUrl`); Python code
       keeps snake_case attributes. The alias generator resolves this once at the
       API boundary instead of at every call site.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base schema: snake_case attributes, camelCase JSON.

    populate_by_name=True lets services construct records with Python names
    while request bodies are accepted in either form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "unsupported_type",
            "message": "File type 'text/plain' is not supported. Allowed types: application/pdf, image/*",
            "details": {"field": "file", "mime_type": "text/plain"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """Plain acknowledgement body, e.g. for deletes."""
    message: str


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    status: healthy (all up), degraded (provider down), unhealthy (database down)
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    llm: str = Field(description="Generation provider status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
