"""
FormRelay Backend — Shared Schema Building Blocks
===================================================

What:  Base model with camelCase aliases plus the error/health envelopes
       every route shares.
How:   Request bodies accept both camelCase and snake_case keys
       (populate_by_name); responses are serialized with camelCase aliases
       because FastAPI dumps response models by alias.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base for every request/response schema exposed by the API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def decode_json_text(value: Any) -> Any:
    """
    Turns a serialized blob column back into JSON for the response body.

    Stored values that are not valid JSON are returned unchanged.
    """
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


class MessageResponse(APIModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "forbidden",
            "message": "Form creator has no remaining submission quota",
            "details": {"form_id": "..."},
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    live_connections: int = Field(description="Socket.IO sessions registered to an account")
    uptime_seconds: float = Field(description="Seconds since service started")
