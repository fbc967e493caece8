"""
Entry point from the Stripe webhook endpoint into the job queues.

The HTTP layer verifies the payload with ``verify_webhook_signature``
and hands the resulting event to ``enqueue_stripe_event``, which routes
it to the Celery task for its family. Nothing is processed inline.

Usage:
    event = verify_webhook_signature(request.body, request.headers["Stripe-Signature"])
    enqueue_stripe_event(event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from core.exceptions import ValidationError
from payments.webhooks.types import CHECKOUT_EVENTS, PAYMENT_EVENTS, REFUND_EVENTS

if TYPE_CHECKING:
    from typing import Any

    from celery import Task

logger = logging.getLogger(__name__)


class WebhookSignatureError(ValidationError):
    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


def verify_webhook_signature(payload: bytes, signature: str) -> dict[str, Any]:
    """
    Verify and parse a Stripe webhook payload.

    Raises:
        WebhookSignatureError: Invalid signature or payload
    """
    try:
        event = stripe.Webhook.construct_event(
            payload,
            signature,
            settings.STRIPE_WEBHOOK_SECRET,
        )
    except (stripe.SignatureVerificationError, ValueError) as exc:
        raise WebhookSignatureError(
            "Invalid webhook signature",
            details={"error": str(exc)},
        ) from exc
    return event.to_dict()


def task_for_event(event_type: str | None) -> Task | None:
    """Return the Celery task that processes ``event_type``, if any."""
    from payments.tasks import (
        process_checkout_event,
        process_payment_event,
        process_refund_event,
    )

    if event_type in CHECKOUT_EVENTS:
        return process_checkout_event
    if event_type in PAYMENT_EVENTS:
        return process_payment_event
    if event_type in REFUND_EVENTS:
        return process_refund_event
    return None


def enqueue_stripe_event(event: dict[str, Any]) -> bool:
    """
    Queue a verified Stripe event for processing.

    Args:
        event: Event dict with ``id``, ``type`` and ``data.object``

    Returns:
        True if the event was queued, False if its type is not handled
    """
    event_type = event.get("type")
    task = task_for_event(event_type)
    if task is None:
        logger.info(
            f"Ignoring unhandled Stripe event type: {event_type}",
            extra={"stripe_event_id": event.get("id"), "event_type": event_type},
        )
        return False

    event_object = (event.get("data") or {}).get("object") or {}
    task.delay(event_type, event_object)

    logger.info(
        f"Queued {event_type} for processing",
        extra={
            "stripe_event_id": event.get("id"),
            "event_type": event_type,
            "task": task.name,
            "order_id": (event_object.get("metadata") or {}).get("orderId"),
        },
    )
    return True
