"""
Celery tasks for mail delivery.

Tasks:
    send_order_mail: Order and refund notifications (queue: order-mail)
    send_auth_mail: Account notifications (queue: auth-mail)

Design:
    - Jobs carry camelCase payloads (orderId, refundId, ...)
    - Payloads are validated before rendering; a job missing a field its
      template needs fails permanently with MailJobValidationError
    - SMTP/rendering failures raise MailDeliveryError and are retried with
      exponential backoff

Usage:
    # Normally queued through notifications.queue.QueueService
    send_order_mail.delay("orderShipped", {"orderId": "...", ...})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from celery import shared_task

from notifications.exceptions import MailDeliveryError, MailJobValidationError
from notifications.services import MailService
from notifications.types import required_fields

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_MAIL_RETRIES = 3


# =============================================================================
# Helpers
# =============================================================================


def validate_job_data(job_id: str | None, template_key: str, data: dict[str, Any]) -> None:
    """
    Ensure a mail job carries every field its template needs.

    Raises:
        MailJobValidationError: Naming the job, the missing field and
            the template
    """
    for field in required_fields(template_key):
        if not data.get(field):
            raise MailJobValidationError(
                f"Job {job_id}: Missing '{field}' in job data for job type '{template_key}'.",
                details={"job_id": job_id, "field": field, "template": template_key},
            )


def build_order_mail_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Map a job payload to template context variables."""
    return {
        "order_id": data["orderId"],
        "customer_name": data["username"],
        "tracking_id": data.get("trackingId"),
        "refund_id": data.get("refundId"),
    }


# =============================================================================
# Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(MailDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_MAIL_RETRIES},
    acks_late=True,
)
def send_order_mail(self, template_key: str, data: dict) -> dict:
    """
    Send an order or refund notification.

    Args:
        template_key: MailTemplate value
        data: Job payload

    Returns:
        Dict with the template and recipient
    """
    job_id = self.request.id
    validate_job_data(job_id, template_key, data)

    logger.info(
        f"Sending {template_key} mail for order {data['orderId']}",
        extra={"job_id": job_id, "template": template_key, "order_id": data["orderId"]},
    )

    MailService.send_templated_email(
        template_key,
        data["email"],
        build_order_mail_fields(data),
    )
    return {"status": "sent", "template": template_key, "order_id": data["orderId"]}


@shared_task(
    bind=True,
    autoretry_for=(MailDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_MAIL_RETRIES},
    acks_late=True,
)
def send_auth_mail(self, template_key: str, data: dict) -> dict:
    """Send an account notification (password reset link)."""
    job_id = self.request.id
    validate_job_data(job_id, template_key, data)

    logger.info(
        f"Sending {template_key} mail",
        extra={"job_id": job_id, "template": template_key},
    )

    MailService.send_templated_email(
        template_key,
        data["email"],
        {
            "customer_name": data["username"],
            "password_reset_link": data["passwordResetLink"],
        },
    )
    return {"status": "sent", "template": template_key}
