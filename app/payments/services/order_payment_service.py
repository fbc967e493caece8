"""
Payment record service.

OrderPaymentService owns the OrderPayment row of an order. Webhook
handlers call it to create the record the first time Stripe associates
a payment intent with the order, and to update it afterwards.

Usage:
    from payments.services import OrderPaymentService

    OrderPaymentService.record_payment(
        order_id, transaction_id="pi_123", status=PaymentStatus.PAID, amount=2500
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService
from payments.exceptions import PaymentRecordError
from payments.models import OrderPayment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


class OrderPaymentService(BaseService):
    """Create and update the payment record of an order."""

    @classmethod
    def get_by_order(cls, order_id: UUID | str, for_update: bool = False) -> OrderPayment | None:
        queryset = OrderPayment.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(order_id=order_id).first()

    @classmethod
    def record_payment(
        cls,
        order_id: UUID | str,
        transaction_id: str,
        status: str,
        amount: int | None,
    ) -> OrderPayment:
        """
        Create the order's payment record, or update it in place.

        Callers are responsible for checking that an existing record's
        transaction id matches ``transaction_id`` before calling.

        Args:
            order_id: Order UUID
            transaction_id: Stripe PaymentIntent id
            status: PaymentStatus value
            amount: Amount in minor units (None keeps the stored amount)

        Raises:
            PaymentRecordError: If the write fails
        """
        try:
            with cls.atomic():
                payment = cls.get_by_order(order_id, for_update=True)
                if payment is None:
                    payment = OrderPayment.objects.create(
                        order_id=order_id,
                        transaction_id=transaction_id,
                        status=status,
                        amount=amount or 0,
                    )
                    created = True
                else:
                    payment.status = status
                    if amount is not None:
                        payment.amount = amount
                    payment.save(update_fields=["status", "amount", "updated_at"])
                    created = False
        except Exception as exc:
            logger.error(
                f"Failed to record payment for order {order_id}: {exc}",
                extra={"order_id": str(order_id), "transaction_id": transaction_id},
            )
            raise PaymentRecordError(
                f"Failed to record payment for order {order_id}",
                details={"order_id": str(order_id), "transaction_id": transaction_id},
            ) from exc

        logger.info(
            f"{'Created' if created else 'Updated'} payment record for order {order_id}",
            extra={
                "order_id": str(order_id),
                "transaction_id": transaction_id,
                "status": str(status),
                "amount": payment.amount,
            },
        )
        return payment

    @classmethod
    def update_payment(
        cls,
        order_id: UUID | str,
        status: str,
        amount: int | None = None,
    ) -> OrderPayment:
        """
        Update the status (and optionally amount) of an existing record.

        Raises:
            PaymentRecordError: If the order has no payment record or the
                write fails
        """
        payment = cls.get_by_order(order_id)
        if payment is None:
            raise PaymentRecordError(
                f"Order {order_id} has no payment record",
                details={"order_id": str(order_id)},
            )
        return cls.record_payment(order_id, payment.transaction_id, status, amount)

    @classmethod
    def mark_refunded(cls, order_id: UUID | str) -> OrderPayment:
        return cls.update_payment(order_id, PaymentStatus.REFUNDED)
