"""
ChatSphere Backend: Shared Pydantic Schemas
===========================================

What:  Base model, response envelope and error/health models shared by
       every route.
How:   Fields are declared snake_case in Python and exposed camelCase on the
       wire through an alias generator; requests accept either spelling.

Envelope:
    {"success": true, "message": "Contacts fetched successfully",
     "data": {"contacts": [...]}}
"""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base for every API schema: camelCase aliases, ORM attribute reading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class APIResponse(CamelModel, Generic[DataT]):
    """
    Success envelope returned by every JSON endpoint.

    `data` is null for actions that have nothing to return
    (reject request, remove contact, logout).
    """

    success: bool = Field(default=True, description="Always true for 2xx responses")
    message: str = Field(description="Human-readable outcome")
    data: Optional[DataT] = Field(default=None, description="Endpoint payload")


class ErrorResponse(CamelModel):
    """
    Standardized error envelope for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """

    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    """
    Health check response showing service and dependency status.

    status:      healthy | degraded | unhealthy
    database:    connected | disconnected
    image_host:  available | unavailable | circuit_open | not_configured
    """

    success: bool = Field(default=True)
    message: str = Field(default="Server is healthy")
    timestamp: datetime = Field(description="Server time (UTC)")
    status: str = Field(description="Overall service status")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity")
    image_host: str = Field(description="Image host status")
    uptime_seconds: float = Field(description="Seconds since service started")
