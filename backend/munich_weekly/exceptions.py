"""
Munich Weekly Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions, one per failure class.
How:   Each exception carries a user-facing message and a context dict.
       Global handlers in main.py translate them to JSON error responses.
Who:   Raised by services, dependencies and routes.

Exception Hierarchy:
    MunichWeeklyError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthenticationRequiredError  → 401 Unauthorized
    ├── PermissionDeniedError        → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── ConflictError                → 409 Conflict
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── FileStorageError             → 500 Internal Server Error
    └── DatabaseError                → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MunichWeeklyError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing description (safe to return in API responses)
        context:  Debug details; logged, and returned only for client errors
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MunichWeeklyError):
    """
    A business rule rejected the request; the client can correct it.

    Schema-level validation stays with FastAPI (422). This one covers rules
    such as submission windows, quotas and file types.
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


class AuthenticationRequiredError(MunichWeeklyError):
    """The endpoint needs a resolved user and the request has none."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(MunichWeeklyError):
    """The caller is known but may not perform this action (not owner, not admin)."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MunichWeeklyError):
    """
    A requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id is not None:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(MunichWeeklyError):
    """The request collides with existing state (duplicate vote, taken page URL)."""

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(MunichWeeklyError):
    """
    Reading, writing or deleting a stored file failed.

    The client sees a generic message; the OS error goes to the log.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MunichWeeklyError):
    """
    A query or write failed unexpectedly.

    The response message is always generic; constraint names and SQL stay
    in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MunichWeeklyError):
    """Per-IP request budget exhausted for the current window."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
