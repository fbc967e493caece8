"""
Notification exceptions.

Exception Hierarchy:
    QueueError - A job could not be handed to the broker (ExternalServiceError)
    MailJobValidationError - A mail job is missing required fields (ValidationError)
    MailDeliveryError - Rendering or SMTP delivery failed (ExternalServiceError)
"""

from __future__ import annotations

from core.exceptions import ExternalServiceError, ValidationError


class QueueError(ExternalServiceError):
    default_error_code: str = "QUEUE_ERROR"


class MailJobValidationError(ValidationError):
    """
    Raised when a mail job lacks a field its template needs.

    Not retried: the payload will not fix itself.
    """

    default_error_code: str = "MAIL_JOB_INVALID"


class MailDeliveryError(ExternalServiceError):
    """Raised when a templated mail could not be rendered or sent."""

    default_error_code: str = "MAIL_DELIVERY_FAILED"
