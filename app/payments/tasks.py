"""
Celery tasks for Stripe webhook processing.

One task per queue family; each hands the event to the family's
WebhookJobProcessor and returns the processor's result dict. After a
successful run the task's ``on_success`` hook queues the matching
notification.

Queues (see CELERY_TASK_ROUTES):
    process_checkout_event -> stripe-checkout
    process_payment_event  -> stripe-payment
    process_refund_event   -> stripe-refund

Usage:
    from payments.tasks import process_checkout_event

    process_checkout_event.delay("checkout.session.expired", session_object)
"""

from __future__ import annotations

import logging

from celery import Task, shared_task

from notifications.exceptions import QueueError
from payments.webhooks.processor import get_processor
from payments.webhooks.types import WebhookJob

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = 5


# =============================================================================
# Base Task
# =============================================================================


class WebhookJobTask(Task):
    """
    Base task for webhook families.

    ``family`` selects the processor; it is set per task through the
    task decorator options.
    """

    family: str = ""

    def build_job(self, task_id: str | None, args, kwargs) -> WebhookJob:
        event_type = kwargs.get("event_type", args[0] if args else None)
        event_data = kwargs.get("event_data", args[1] if len(args) > 1 else {})
        return WebhookJob(id=task_id or "", name=event_type, data=event_data or {})

    def run_job(self, event_type: str, event_data: dict) -> dict:
        job = self.build_job(self.request.id, (event_type, event_data), {})
        logger.info(
            f"Processing {event_type} job",
            extra={"job_id": job.id, "event_type": event_type, "order_id": job.order_id},
        )
        result = get_processor(self.family).process(job)
        if not result["success"]:
            logger.warning(
                f"Job {job.id} ({event_type}) was not applied: {result['log']}",
                extra={"job_id": job.id, "event_type": event_type, "order_id": job.order_id},
            )
        return result

    def on_success(self, retval, task_id, args, kwargs):
        job = self.build_job(task_id, args, kwargs)
        try:
            get_processor(self.family).on_complete(job, retval)
        except QueueError:
            logger.exception(
                f"Job {task_id} ({job.name}) succeeded but its notification could not be queued",
                extra={"job_id": task_id, "event_type": job.name, "order_id": job.order_id},
            )


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    base=WebhookJobTask,
    family="checkout",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_checkout_event(self, event_type: str, event_data: dict) -> dict:
    """
    Process a checkout.session.* event.

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    return self.run_job(event_type, event_data)


@shared_task(
    bind=True,
    base=WebhookJobTask,
    family="payment",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_payment_event(self, event_type: str, event_data: dict) -> dict:
    """Process a payment_intent.* event."""
    return self.run_job(event_type, event_data)


@shared_task(
    bind=True,
    base=WebhookJobTask,
    family="refund",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_refund_event(self, event_type: str, event_data: dict) -> dict:
    """Process a refund.* event."""
    return self.run_job(event_type, event_data)
