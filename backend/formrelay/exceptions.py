"""
FormRelay Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and auth dependencies; caught by global handlers.

Exception Hierarchy:
    FormRelayError (base)
    ├── ValidationError           → 400 Bad Request
    ├── UnauthorizedError         → 401 Unauthorized
    ├── ForbiddenError            → 403 Forbidden
    ├── NotFoundError             → 404 Not Found
    ├── ConflictError             → 409 Conflict
    └── DatabaseError             → 500 Internal Server Error
        └── TransactionTimeoutError → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class FormRelayError(Exception):
    """
    Base exception for all FormRelay application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FormRelayError):
    """
    Raised when client input fails validation.

    When:    Empty or non-list bulk payloads, non-numeric quota deltas,
             missing required fields, unknown enum values.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Invalid submission count value",
            "details": {"field": "submission_count"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(FormRelayError):
    """Missing, malformed, or expired bearer token; bad login credentials."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(FormRelayError):
    """
    Raised when the caller is authenticated but may not perform the action.

    When:    Non-admin hitting an admin route, exhausted submission quota,
             touching a form or response the caller neither owns nor submitted.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(FormRelayError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that into
    this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(FormRelayError):
    """Duplicate assignment, e-mail already registered, reused activation code."""

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(FormRelayError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the context
    (original exception type, ids involved) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TransactionTimeoutError(DatabaseError):
    """
    Raised when a bulk submission exceeds its lock-wait or execution time limit.

    The transaction is rolled back before this is raised, so no rows were
    written and no counters moved. Clients may retry.
    """

    def __init__(
        self,
        timeout: float,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["timeout_seconds"] = timeout
        super().__init__(
            message=(
                f"The submission batch could not be completed within {timeout:g} seconds "
                f"and was rolled back. Please retry."
            ),
            context=ctx,
        )
        self.timeout = timeout
