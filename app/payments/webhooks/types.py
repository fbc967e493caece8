"""
Type definitions for Stripe webhook processing.

- StripeEvent: The Stripe event types the platform reacts to
- HandlerResult: Outcome of one handler invocation
- WebhookJob: One queued webhook event as seen by a worker
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class StripeEvent(models.TextChoices):
    """Stripe event types, grouped by the queue that processes them."""

    # stripe-checkout
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed", "Checkout session completed"
    CHECKOUT_SESSION_EXPIRED = "checkout.session.expired", "Checkout session expired"

    # stripe-payment
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded", "Payment intent succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed", "Payment intent failed"

    # stripe-refund
    REFUND_CREATED = "refund.created", "Refund created"
    REFUND_UPDATED = "refund.updated", "Refund updated"
    REFUND_FAILED = "refund.failed", "Refund failed"


CHECKOUT_EVENTS = frozenset(
    {StripeEvent.CHECKOUT_SESSION_COMPLETED, StripeEvent.CHECKOUT_SESSION_EXPIRED}
)
PAYMENT_EVENTS = frozenset(
    {StripeEvent.PAYMENT_INTENT_SUCCEEDED, StripeEvent.PAYMENT_INTENT_FAILED}
)
REFUND_EVENTS = frozenset(
    {StripeEvent.REFUND_CREATED, StripeEvent.REFUND_UPDATED, StripeEvent.REFUND_FAILED}
)


@dataclass
class HandlerResult:
    """
    Outcome of a webhook handler.

    Business-rule rejections are ``success=False`` results with a log
    message; they are final and never retried.

    Attributes:
        success: Whether the event was applied
        log: Human-readable explanation (required on failure)
    """

    success: bool
    log: str | None = None

    @classmethod
    def ok(cls, log: str | None = None) -> HandlerResult:
        return cls(success=True, log=log)

    @classmethod
    def fail(cls, log: str) -> HandlerResult:
        return cls(success=False, log=log)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "log": self.log}


@dataclass
class WebhookJob:
    """
    A queued Stripe event.

    Attributes:
        id: Celery task id
        name: Stripe event type
        data: The event's ``data.object`` payload (carries metadata.orderId)
        logs: Messages recorded while processing
    """

    id: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    logs: list[str] = field(default_factory=list)

    @property
    def order_id(self) -> str | None:
        metadata = self.data.get("metadata") or {}
        return metadata.get("orderId")

    def log(self, message: str) -> None:
        """Record a processing message against the job."""
        self.logs.append(message)
        logger.info(
            f"Job {self.id}: {message}",
            extra={"job_id": self.id, "event_type": self.name},
        )
