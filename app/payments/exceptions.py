"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentRecordError - OrderPayment create/update failures
    ├── RefundRecordError - Refund create/update failures
    └── WebhookHandlerError - Unexpected failure inside a webhook handler

Business-rule rejections inside webhook handlers are not exceptions;
handlers return a failed HandlerResult instead. WebhookHandlerError is
reserved for faults that should go back to Celery for retry.

Usage:
    from payments.exceptions import WebhookHandlerError

    raise WebhookHandlerError(
        f"Failed to handle {handler_name} event for Order {order_id}. "
        "An unexpected error occurred."
    ) from exc
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentRecordError(PaymentError):
    """Raised when the order's payment record could not be written."""

    default_error_code: str = "PAYMENT_RECORD_ERROR"


class RefundRecordError(PaymentError):
    """Raised when a refund record could not be written."""

    default_error_code: str = "REFUND_RECORD_ERROR"


# =============================================================================
# Webhook Exceptions
# =============================================================================


class WebhookHandlerError(PaymentError):
    """Raised when a webhook handler fails for a reason other than a business rule."""

    default_error_code: str = "WEBHOOK_HANDLER_ERROR"
