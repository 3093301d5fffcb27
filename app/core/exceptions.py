"""
Application-wide exception hierarchy.

Every domain error carries a human-readable message, a machine-readable
error code and an HTTP status, so views can translate any of them into a
JSON response without per-error branching.

Exception Hierarchy:
    BaseApplicationError (500)
    ├── ValidationError (400) - malformed input, business rule violations
    ├── NotFoundError (404) - missing or not-owned resources
    ├── ConflictError (409) - uniqueness races, stale versions, state conflicts
    └── ExternalServiceError (502) - payment gateway and other upstream failures

Usage:
    from core.exceptions import NotFoundError

    listing = Listing.objects.filter(id=listing_id, owner=user).first()
    if listing is None:
        raise NotFoundError("Business not found.", error_code="LISTING_NOT_FOUND")

    # In a view
    except BaseApplicationError as exc:
        return Response(exc.to_dict(), status=exc.http_status)

Note:
    DRF still owns API-layer failures (serializer validation, authentication).
    These exceptions are raised from the service layer.
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
        details: Additional error context (field errors, identifiers)
        http_status: Status code used when the error reaches a view
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

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
        Convert the exception to an API error body.

        Returns:
            Dict with error and error_code keys, plus details when present

        Example:
            {
                "error": "Business not found.",
                "error_code": "LISTING_NOT_FOUND",
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
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input fails service-layer validation.

    Use for business rule violations that a serializer cannot express,
    e.g. a pricing package that exists but is no longer active.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Resources owned by someone else are reported as not found as well, so
    callers cannot learn whether other owners' records exist.
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Unique constraint races that could not be resolved
    - Optimistic locking failures
    - Invalid state transitions

    Example:
        raise ConflictError(
            "Could not reserve a unique slug. Please try again.",
            error_code="SLUG_RETRIES_EXHAUSTED",
            details={"base_slug": base},
        )
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging but don't expose upstream
    internals to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
