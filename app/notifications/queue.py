"""
Producer side of the mail queues.

QueueService is the only place that hands mail jobs to Celery. Routing
to the ``order-mail`` and ``auth-mail`` queues is configured through
CELERY_TASK_ROUTES.

Usage:
    from notifications.queue import QueueService
    from notifications.types import MailTemplate

    QueueService.add_order_mail_job(
        MailTemplate.REFUND_CREATED,
        {"orderId": order_id, "email": email, "username": name, "refundId": refund_id},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService
from notifications.exceptions import QueueError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class QueueService(BaseService):
    """Enqueue mail jobs."""

    @classmethod
    def add_order_mail_job(cls, template_key: str, data: dict[str, Any]) -> str:
        """
        Queue an order notification.

        Args:
            template_key: MailTemplate value
            data: Job payload (orderId, email, username, optional refundId
                and trackingId)

        Returns:
            Celery task id

        Raises:
            QueueError: If the broker rejected the job
        """
        from notifications.tasks import send_order_mail

        return cls._enqueue(send_order_mail, template_key, data)

    @classmethod
    def add_auth_mail_job(cls, template_key: str, data: dict[str, Any]) -> str:
        """
        Queue an account notification (password reset).

        Raises:
            QueueError: If the broker rejected the job
        """
        from notifications.tasks import send_auth_mail

        return cls._enqueue(send_auth_mail, template_key, data)

    @classmethod
    def _enqueue(cls, task, template_key: str, data: dict[str, Any]) -> str:
        try:
            result = task.delay(str(template_key), data)
        except Exception as exc:
            logger.error(
                f"Failed to queue {template_key} mail: {exc}",
                extra={"template": str(template_key), "task": task.name},
            )
            raise QueueError(
                "Failed to add to the queue",
                details={"template": str(template_key), "task": task.name},
            ) from exc

        logger.info(
            f"Queued {template_key} mail",
            extra={"template": str(template_key), "task_id": result.id},
        )
        return result.id
