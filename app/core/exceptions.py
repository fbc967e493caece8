"""
Base exception classes for application-wide error handling.

Every domain error raised by the order, payment and notification apps
derives from BaseApplicationError so callers (Celery tasks, services,
future HTTP views) can catch one type and still get a machine-readable
error code.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Invalid input or job payloads
    ├── NotFoundError - Resource not found
    ├── ConflictError - State conflicts (invalid transitions, duplicates)
    └── ExternalServiceError - Broker, mail server or Stripe failures

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError(
        f"Order {order_id} not found",
        error_code="ORDER_NOT_FOUND",
        details={"order_id": str(order_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        logger.warning(str(e), extra=e.to_dict())
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
        details: Additional error context (ids, statuses, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

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
        Convert exception to a serialisable dictionary.

        Returns:
            Dict with error, error_code, and (when present) details keys
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
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for malformed job payloads and missing required fields.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for single-resource lookups where existence is expected.
    Lookups that may legitimately miss return None instead.
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Duplicate entries (unique constraint violations)
    - Concurrent modification conflicts

    Example:
        if order.status != OrderStatus.PENDING:
            raise ConflictError(
                f"Cannot cancel order in {order.status} status",
                error_code="INVALID_STATE_TRANSITION",
                details={"current_status": order.status, "action": "cancel"},
            )
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for message broker, SMTP and Stripe failures. The original
    exception should be chained with ``raise ... from exc``.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
