"""
Order status engine.

Every status change goes through ``OrderStatusService.change_status``
with a StatusRule naming the status the order must currently be in and
the status to move to. The engine:

1. Locks and loads the order (raises OrderNotFoundError if missing)
2. Returns the order untouched when it is already in the target status
3. Rejects the change when the order is not in the source status
4. Runs the rule's ``validate`` hook
5. Persists the new status through OrderService.update_status
6. Runs the rule's ``post_update`` hook

Because of step 2 a duplicated webhook delivery never repeats side
effects such as stock reversal.

Usage:
    from orders.services import OrderStatusService

    OrderStatusService.cancel_order(order_id)
    OrderStatusService.ship_order(order_id, tracking_id="1Z999")
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService
from notifications.queue import QueueService
from notifications.types import MailTemplate
from orders.exceptions import (
    InvalidTransitionError,
    OrderCancellationError,
    OrderDeliveryError,
    OrderNotFoundError,
    OrderShipmentError,
)
from orders.models import Shipping
from orders.services.order_service import OrderService
from orders.state_machines import OrderStatus
from orders.types import OrderDTO, StatusRule

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


class OrderStatusService(BaseService):
    """Guarded order status transitions and the operations built on them."""

    # =========================================================================
    # Engine
    # =========================================================================

    @classmethod
    def change_status(cls, order_id: UUID | str, rule: StatusRule) -> OrderDTO:
        """
        Apply a guarded status change.

        Args:
            order_id: Order UUID
            rule: Source/target statuses and optional hooks

        Returns:
            The order after the change, or unchanged when it was already
            in ``rule.to_status``

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidTransitionError: If the order is in neither the source
                nor the target status
        """
        with cls.atomic():
            order = OrderService.get_order(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(order_id)

            if order.status == rule.to_status:
                logger.info(
                    f"Order {order_id} already {rule.to_status}, skipping",
                    extra={"order_id": str(order_id), "status": str(order.status)},
                )
                return order

            if order.status != rule.from_status:
                raise InvalidTransitionError(
                    rule.from_status, rule.to_status, order.status
                )

            if rule.validate:
                rule.validate(order)

            updated = OrderService.update_status(order.id, rule.to_status)

            if rule.post_update:
                rule.post_update(updated)

        logger.info(
            f"Order {order_id} moved from {rule.from_status} to {rule.to_status}",
            extra={
                "order_id": str(order_id),
                "from_status": str(rule.from_status),
                "to_status": str(rule.to_status),
            },
        )
        return updated

    # =========================================================================
    # Derived operations
    # =========================================================================

    @classmethod
    def cancel_order(cls, order_id: UUID | str) -> OrderDTO:
        """
        Cancel a pending order, restoring its stock.

        Transition: PENDING -> CANCELED

        Raises:
            OrderCancellationError: Wrapping any failure
        """

        def post_update(order: OrderDTO) -> None:
            OrderService.revert_order_stocks(order.id)
            cls._notify_on_commit(MailTemplate.ORDER_CANCELED, order)

        rule = StatusRule(
            from_status=OrderStatus.PENDING,
            to_status=OrderStatus.CANCELED,
            post_update=post_update,
        )
        try:
            return cls.change_status(order_id, rule)
        except Exception as exc:
            logger.error(
                f"Failed to cancel order {order_id}: {exc}",
                extra={"order_id": str(order_id)},
            )
            raise OrderCancellationError(
                f"Failed to cancel order {order_id}",
                details={"order_id": str(order_id)},
            ) from exc

    @classmethod
    def ship_order(cls, order_id: UUID | str, tracking_id: str | None = None) -> OrderDTO:
        """
        Mark a completed order as shipped.

        Transition: COMPLETE -> SHIPPED

        Args:
            order_id: Order UUID
            tracking_id: Optional carrier tracking id, stored on the
                shipping record and included in the notification

        Raises:
            OrderShipmentError: Wrapping any failure
        """

        def post_update(order: OrderDTO) -> None:
            if tracking_id:
                Shipping.objects.filter(order_id=order.id).update(tracking_id=tracking_id)
            cls._notify_on_commit(
                MailTemplate.ORDER_SHIPPED, order, trackingId=tracking_id
            )

        rule = StatusRule(
            from_status=OrderStatus.COMPLETE,
            to_status=OrderStatus.SHIPPED,
            post_update=post_update,
        )
        try:
            return cls.change_status(order_id, rule)
        except Exception as exc:
            logger.error(
                f"Failed to ship order {order_id}: {exc}",
                extra={"order_id": str(order_id), "tracking_id": tracking_id},
            )
            raise OrderShipmentError(
                f"Failed to ship order {order_id}",
                details={"order_id": str(order_id)},
            ) from exc

    @classmethod
    def deliver_order(cls, order_id: UUID | str) -> OrderDTO:
        """
        Mark a shipped order as delivered.

        Transition: SHIPPED -> DELIVERED

        Raises:
            OrderDeliveryError: Wrapping any failure
        """
        rule = StatusRule(
            from_status=OrderStatus.SHIPPED,
            to_status=OrderStatus.DELIVERED,
            post_update=partial(cls._notify_on_commit, MailTemplate.ORDER_DELIVERED),
        )
        try:
            return cls.change_status(order_id, rule)
        except Exception as exc:
            logger.error(
                f"Failed to deliver order {order_id}: {exc}",
                extra={"order_id": str(order_id)},
            )
            raise OrderDeliveryError(
                f"Failed to mark order {order_id} as delivered",
                details={"order_id": str(order_id)},
            ) from exc

    # =========================================================================
    # Notifications
    # =========================================================================

    @staticmethod
    def _notify_on_commit(template: MailTemplate, order: OrderDTO, **extra) -> None:
        """Queue an order mail once the surrounding transaction commits."""
        data = OrderService.mail_context(order)
        if not data["email"]:
            logger.info(
                f"Order {order.id} has no recipient, skipping {template} mail",
                extra={"order_id": str(order.id), "template": str(template)},
            )
            return

        data.update({key: value for key, value in extra.items() if value is not None})
        transaction.on_commit(
            partial(QueueService.add_order_mail_job, template, data)
        )
