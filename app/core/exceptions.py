"""
Base exception classes for application-wide error handling.

Every application error carries the HTTP status it maps to, so the API
boundary (core.exception_handler) can translate any of them without a
per-view lookup table.

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── AuthenticationError - No authenticated caller (401)
    ├── ValidationError - Input validation failures (400)
    ├── NotFoundError - Resource not found (404)
    ├── ConflictError - State conflicts with the request (409)
    └── InternalError - Failures the caller cannot fix (500)

Usage:
    from core.exceptions import ValidationError

    raise ValidationError("Invalid tier", error_code="INVALID_TIER")

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status returned when this error reaches the API
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "No active subscription found for this user.",
                "error_code": "NO_SUBSCRIPTION"
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class AuthenticationError(BaseApplicationError):
    """Raised when an operation requires an authenticated caller."""

    default_error_code: str = "UNAUTHENTICATED"
    status_code: int = 401


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for service-layer validation logic. DRF serializer validation
    errors are handled by DRF itself and also answer 400.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource is not found."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Example:
        raise ConflictError(
            "You already have an active subscription.",
            error_code="ALREADY_SUBSCRIBED",
        )
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class InternalError(BaseApplicationError):
    """
    Raised for server-side failures: storage, provider calls, configuration.
    """

    default_error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

