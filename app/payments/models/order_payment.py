"""
OrderPayment model: the payment record attached to an order.

An order has at most one payment record. It is created the first time a
Stripe event associates a payment intent (transaction id) with the order
and updated by later events for the same transaction.

Usage:
    from payments.models import OrderPayment
    from payments.state_machines import PaymentStatus

    payment = OrderPayment.objects.create(
        order_id=order_id,
        transaction_id="pi_123",
        status=PaymentStatus.PAID,
        amount=2500,
    )
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentMethod, PaymentStatus


class OrderPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Payment record for an order.

    Fields:
        order: Order paid for (one record per order)
        transaction_id: Stripe PaymentIntent id (pi_xxx), unique
        status: Payment status
        amount: Amount in smallest currency unit (e.g. cents)
        method: Payment method
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment",
        help_text="Order this payment belongs to",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    transaction_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
        db_index=True,
        help_text="Current payment status",
    )

    amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount in smallest currency unit (e.g., cents)",
    )

    method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CARD,
        help_text="Payment method",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order Payment"
        verbose_name_plural = "Order Payments"

    def __str__(self) -> str:
        return f"OrderPayment({self.transaction_id}, {self.status}, {self.amount})"
