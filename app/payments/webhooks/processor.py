"""
Webhook job processor.

One WebhookJobProcessor per queue family (checkout, payment, refund)
routes jobs to the handler registered for their event type, runs the
handler inside a transaction with the order row locked, and decides
which notification to send once the job has succeeded.

Usage:
    from payments.webhooks.processor import get_processor
    from payments.webhooks.types import WebhookJob

    processor = get_processor("checkout")
    result = processor.process(WebhookJob(id=task_id, name=event_type, data=data))
    processor.on_complete(job, result)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from django.db import transaction

from notifications.queue import QueueService
from notifications.types import MailTemplate
from orders.services import OrderService
from payments.webhooks.handlers import (
    CHECKOUT_HANDLERS,
    PAYMENT_HANDLERS,
    REFUND_HANDLERS,
    PaymentEventHandler,
)
from payments.webhooks.types import HandlerResult, StripeEvent, WebhookJob

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any


logger = logging.getLogger(__name__)


# Recipient fields copied from a successful job result into the mail job
MAIL_FIELDS = ("orderId", "email", "username", "refundId")


class WebhookJobProcessor:
    """
    Routes webhook jobs of one queue family to their handlers.

    Args:
        name: Queue name, used in log messages
        handlers: Handler instances; each must declare ``event_type``
        enrich: Optional callable adding recipient fields to a successful
            result (orderId, email, username, ...)
        mail_templates: Event type -> MailTemplate sent after success
    """

    def __init__(
        self,
        name: str,
        handlers: Iterable[PaymentEventHandler],
        enrich: Callable[[WebhookJob], dict[str, Any]] | None = None,
        mail_templates: Mapping[str, str] | None = None,
    ):
        self.name = name
        self.enrich = enrich
        self.mail_templates = dict(mail_templates or {})
        self.handlers = self._build_registry(list(handlers))

    def _build_registry(
        self, handlers: list[PaymentEventHandler]
    ) -> dict[str, PaymentEventHandler]:
        registry: dict[str, PaymentEventHandler] = {}

        if not handlers:
            logger.warning(f"[{self.name}] No handlers provided")

        for handler in handlers:
            event_type = getattr(handler, "event_type", None)
            if not event_type:
                logger.warning(
                    f"[{self.name}] Handler {type(handler).__name__} has no event type, skipping"
                )
                continue
            if event_type in registry:
                logger.warning(
                    f"[{self.name}] Duplicate handler for {event_type}: "
                    f"{type(registry[event_type]).__name__} replaced by {type(handler).__name__}"
                )
            registry[str(event_type)] = handler

        logger.info(
            f"[{self.name}] Registered {len(registry)} handler(s)",
            extra={"queue": self.name, "event_types": sorted(registry)},
        )
        return registry

    # =========================================================================
    # Processing
    # =========================================================================

    def process_job(self, job: WebhookJob) -> HandlerResult:
        """
        Run the handler for one job.

        Guard failures (unknown event, no handler, missing/unknown order)
        are returned as failed results. Exceptions raised by the handler
        roll back its transaction and propagate.
        """
        if job.name not in StripeEvent.values:
            return self._reject(job, "Unknown event type")

        handler = self.handlers.get(job.name)
        if handler is None:
            return self._reject(job, "No handler found")

        order_id = job.order_id
        if not order_id:
            return self._reject(job, "Missing order ID")

        with transaction.atomic():
            order = OrderService.get_order(order_id, for_update=True)
            if order is None:
                return self._reject(job, f"Order {order_id} not found")

            logger.info(
                f"[{self.name}] Handling {job.name} for Order {order_id}",
                extra={"job_id": job.id, "event_type": job.name, "order_id": str(order_id)},
            )
            result = handler.handle(job.data, order)

        if result.log:
            job.log(result.log)
        return result

    def process(self, job: WebhookJob) -> dict[str, Any]:
        """
        Process a job and build the task result.

        Returns:
            Dict with success and log, plus the recipient fields from
            ``enrich`` when the job succeeded
        """
        result = self.process_job(job)
        payload = result.to_dict()

        if result.success and self.enrich:
            payload.update(self.enrich(job))

        return payload

    def on_complete(self, job: WebhookJob, result: Mapping[str, Any]) -> str | None:
        """
        Queue the notification for a finished job.

        Sends exactly one order mail when the job succeeded, its event
        type maps to a template and the result names a recipient.

        Returns:
            The mail task id, or None when nothing was queued
        """
        template = self.mail_templates.get(job.name)
        if not result.get("success") or template is None:
            return None

        if not result.get("email"):
            logger.info(
                f"[{self.name}] No recipient for {job.name} on Order {result.get('orderId')}, "
                "skipping notification",
                extra={"job_id": job.id, "event_type": job.name},
            )
            return None

        data = {key: result[key] for key in MAIL_FIELDS if result.get(key) is not None}
        return QueueService.add_order_mail_job(template, data)

    def _reject(self, job: WebhookJob, message: str) -> HandlerResult:
        logger.warning(
            f"[{self.name}] Job {job.id} ({job.name}): {message}",
            extra={"job_id": job.id, "event_type": job.name},
        )
        return HandlerResult.fail(message)


# =============================================================================
# Enrichment
# =============================================================================


def order_recipient(job: WebhookJob) -> dict[str, Any]:
    """Recipient fields of the job's order, re-read after the handler ran."""
    order = OrderService.get_order(job.order_id)
    if order is None:
        return {}
    return OrderService.mail_context(order)


def refund_recipient(job: WebhookJob) -> dict[str, Any]:
    return {**order_recipient(job), "refundId": job.data.get("id")}


# =============================================================================
# Queue Families
# =============================================================================


CHECKOUT_QUEUE = "stripe-checkout"
PAYMENT_QUEUE = "stripe-payment"
REFUND_QUEUE = "stripe-refund"


def build_checkout_processor() -> WebhookJobProcessor:
    return WebhookJobProcessor(
        CHECKOUT_QUEUE,
        [handler() for handler in CHECKOUT_HANDLERS],
        enrich=order_recipient,
        mail_templates={
            StripeEvent.CHECKOUT_SESSION_COMPLETED: MailTemplate.ORDER_COMPLETE,
            StripeEvent.CHECKOUT_SESSION_EXPIRED: MailTemplate.ORDER_EXPIRED,
        },
    )


def build_payment_processor() -> WebhookJobProcessor:
    return WebhookJobProcessor(
        PAYMENT_QUEUE,
        [handler() for handler in PAYMENT_HANDLERS],
    )


def build_refund_processor() -> WebhookJobProcessor:
    return WebhookJobProcessor(
        REFUND_QUEUE,
        [handler() for handler in REFUND_HANDLERS],
        enrich=refund_recipient,
        mail_templates={
            StripeEvent.REFUND_CREATED: MailTemplate.REFUND_CREATED,
            StripeEvent.REFUND_UPDATED: MailTemplate.REFUND_COMPLETE,
            StripeEvent.REFUND_FAILED: MailTemplate.REFUND_FAILED,
        },
    )


PROCESSOR_FACTORIES: dict[str, Callable[[], WebhookJobProcessor]] = {
    "checkout": build_checkout_processor,
    "payment": build_payment_processor,
    "refund": build_refund_processor,
}

# One processor per family per worker process
_processors: dict[str, WebhookJobProcessor] = {}


def get_processor(family: str) -> WebhookJobProcessor:
    """Return the (lazily built) processor for a queue family."""
    if family not in _processors:
        _processors[family] = PROCESSOR_FACTORIES[family]()
    return _processors[family]
