"""
Refund record service.

Keeps local Refund rows in step with Stripe refund events. Stripe is the
source of truth: this service never calls the Stripe API, it records
what the refund.* webhooks report.

Usage:
    from payments.services import RefundService

    refund = RefundService.create_refund(order_id, refund_id="re_123", amount=500)
    RefundService.complete_refund("re_123")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django_fsm import TransitionNotAllowed

from core.services import BaseService
from payments.exceptions import RefundRecordError
from payments.models import Refund
from payments.state_machines import RefundStatus

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


class RefundService(BaseService):
    """Create and transition refund records."""

    @classmethod
    def get_refund(cls, refund_id: str, for_update: bool = False) -> Refund | None:
        queryset = Refund.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(refund_id=refund_id).first()

    @classmethod
    def create_refund(cls, order_id: UUID | str, refund_id: str, amount: int | None) -> Refund:
        """
        Record a new refund in CREATED status.

        Raises:
            RefundRecordError: If the write fails (including a duplicate
                refund id)
        """
        try:
            with cls.atomic():
                refund = Refund.objects.create(
                    order_id=order_id,
                    refund_id=refund_id,
                    amount=amount or 0,
                )
        except Exception as exc:
            raise RefundRecordError(
                f"Failed to create refund {refund_id} for order {order_id}",
                details={"order_id": str(order_id), "refund_id": refund_id},
            ) from exc

        logger.info(
            f"Created refund {refund_id} for order {order_id}",
            extra={"order_id": str(order_id), "refund_id": refund_id, "amount": refund.amount},
        )
        return refund

    @classmethod
    def complete_refund(cls, refund_id: str) -> Refund:
        """
        Transition: CREATED -> COMPLETE

        Raises:
            RefundRecordError: Unknown refund or transition not allowed
        """
        return cls._transition(refund_id, "complete")

    @classmethod
    def fail_refund(cls, refund_id: str, reason: str | None) -> Refund:
        """
        Transition: CREATED -> FAILED, storing Stripe's failure reason.

        Raises:
            RefundRecordError: Unknown refund or transition not allowed
        """
        return cls._transition(refund_id, "fail", reason)

    @classmethod
    def has_outstanding_refunds(cls, order_id: UUID | str) -> bool:
        """True while any refund of the order is still awaiting a result."""
        return Refund.objects.filter(
            order_id=order_id,
            status=RefundStatus.CREATED,
        ).exists()

    @classmethod
    def has_completed_refunds(cls, order_id: UUID | str) -> bool:
        """True when at least one refund of the order has gone through."""
        return Refund.objects.filter(
            order_id=order_id,
            status=RefundStatus.COMPLETE,
        ).exists()

    @classmethod
    def _transition(cls, refund_id: str, method: str, *args) -> Refund:
        try:
            with cls.atomic():
                refund = cls.get_refund(refund_id, for_update=True)
                if refund is None:
                    raise Refund.DoesNotExist(f"Refund {refund_id} does not exist")
                getattr(refund, method)(*args)
                refund.save()
        except (Refund.DoesNotExist, TransitionNotAllowed) as exc:
            raise RefundRecordError(
                f"Cannot {method} refund {refund_id}: {exc}",
                details={"refund_id": refund_id},
            ) from exc

        logger.info(
            f"Refund {refund_id} is now {refund.status}",
            extra={"refund_id": refund_id, "status": str(refund.status)},
        )
        return refund
