"""
Refund model for tracking money returned to customers.

A Refund mirrors a Stripe refund (re_xxx) against an order's payment.
An order may have several refunds (partial refunds); the order only
becomes ``refunded`` once none of them is still outstanding.

Usage:
    from payments.models import Refund

    refund = Refund.objects.create(order_id=order_id, refund_id="re_123", amount=500)

    # State transitions using django-fsm
    refund.complete()  # created -> complete
    refund.save()
"""

from __future__ import annotations

from django.db import models

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import RefundStatus


class Refund(UUIDPrimaryKeyMixin, BaseModel):
    """
    Represents money returned to a customer.

    State Flow:
        CREATED -> COMPLETE
        CREATED -> FAILED

    Fields:
        order: Order being refunded
        refund_id: Stripe Refund ID (re_xxx), unique
        amount: Refund amount in smallest currency unit
        status: Current FSM status
        failure_reason: Stripe failure reason if the refund failed
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Order being refunded",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    refund_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Refund ID (re_xxx)",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Refund amount in smallest currency unit (e.g., cents)",
    )

    status = FSMField(
        default=RefundStatus.CREATED,
        choices=RefundStatus.choices,
        db_index=True,
        help_text="Current state of the refund (managed by FSM)",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Stripe failure reason if the refund failed",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"

    def __str__(self) -> str:
        return f"Refund({self.refund_id}, {self.status}, {self.amount})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=RefundStatus.CREATED,
        target=RefundStatus.COMPLETE,
    )
    def complete(self):
        """Transition: CREATED -> COMPLETE"""
        pass

    @transition(
        field=status,
        source=RefundStatus.CREATED,
        target=RefundStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Transition: CREATED -> FAILED

        Args:
            reason: Stripe failure reason
        """
        self.failure_reason = reason
