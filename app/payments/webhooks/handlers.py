"""
Stripe webhook event handlers.

Each handler reconciles one Stripe event type against a loaded order:
it checks the event against the order's current state, records payment
and refund facts, and drives order status changes through the status
engine.

Contract:
    - ``handle(event_data, order)`` returns a HandlerResult
    - Expected business conditions (wrong status, mismatched transaction,
      duplicate refund) return ``HandlerResult.fail(log)`` and change nothing
    - Unexpected exceptions are logged with traceback and re-raised as
      WebhookHandlerError so the Celery task retries

Usage:
    from payments.webhooks.handlers import CheckoutSessionExpiredHandler

    result = CheckoutSessionExpiredHandler().handle(session, order)
    if not result.success:
        logger.warning(result.log)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from orders.services import OrderService, OrderStatusService, ShippingService
from orders.state_machines import OrderStatus
from orders.types import StatusRule
from payments.exceptions import WebhookHandlerError
from payments.services import OrderPaymentService, RefundService
from payments.state_machines import PaymentStatus, RefundStatus
from payments.webhooks.types import HandlerResult, StripeEvent

if TYPE_CHECKING:
    from typing import Any

    from orders.types import OrderDTO


logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def get_transaction_id(event_data: dict[str, Any]) -> str | None:
    """
    Extract the payment intent id from a checkout session or refund.

    ``payment_intent`` is either the id string or an expanded object.
    """
    payment_intent = event_data.get("payment_intent")
    if isinstance(payment_intent, dict):
        return payment_intent.get("id")
    return payment_intent or None


def first_rejection(*checks: HandlerResult | None) -> HandlerResult | None:
    """The first failed guard result, or None when every guard passed."""
    for check in checks:
        if check is not None:
            return check
    return None


def assign_guest(order: OrderDTO, customer_details: dict[str, Any] | None) -> None:
    """
    Attach the checkout customer to a guest order.

    Skipped for registered owners. The e-mail is required and trimmed;
    a blank name is stored as None.
    """
    if order.owner is not None and order.owner.id is not None:
        return

    details = customer_details or {}
    email = (details.get("email") or "").strip()
    if not email:
        logger.info(
            f"Order {order.id}: no customer e-mail on checkout session, guest not assigned",
            extra={"order_id": str(order.id)},
        )
        return

    name = (details.get("name") or "").strip() or None
    OrderService.assign_guest_to_order(order.id, email, name)


# =============================================================================
# Base Handler
# =============================================================================


class PaymentEventHandler(ABC):
    """
    Base class for Stripe event handlers.

    Subclasses set ``event_type`` and implement ``process``.
    """

    event_type: StripeEvent | None = None

    def handle(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        try:
            result = self.process(event_data, order)
        except Exception as exc:
            logger.exception(
                f"{type(self).__name__} failed for Order {order.id}",
                extra={"order_id": str(order.id), "event_type": str(self.event_type)},
            )
            raise WebhookHandlerError(
                f"Failed to handle {type(self).__name__} event for Order {order.id}. "
                "An unexpected error occurred.",
                details={"order_id": str(order.id), "event_type": str(self.event_type)},
            ) from exc

        if not result.success:
            logger.warning(
                result.log,
                extra={"order_id": str(order.id), "event_type": str(self.event_type)},
            )
        return result

    @abstractmethod
    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        """Apply the event to the order."""

    @staticmethod
    def require_status(order: OrderDTO, *statuses: str) -> HandlerResult | None:
        """Failed result unless the order is in one of ``statuses``."""
        if order.status in statuses:
            return None
        expected = " or ".join(str(status) for status in statuses)
        return HandlerResult.fail(
            f"Order {order.id} must have a status of {expected}, but found {order.status}"
        )

    @staticmethod
    def check_transaction(order: OrderDTO, transaction_id: str | None) -> HandlerResult | None:
        """Failed result when the order's payment record belongs to another transaction."""
        if order.payment is None or order.payment.transaction_id == transaction_id:
            return None
        return HandlerResult.fail(
            f"Transaction ID mismatch for Order {order.id}: expected "
            f"{order.payment.transaction_id}, received {transaction_id}"
        )


# =============================================================================
# Checkout Session Handlers
# =============================================================================


class CheckoutSessionCompletedHandler(PaymentEventHandler):
    """
    checkout.session.completed: the customer paid.

    Records the payment as paid, moves the order pending -> complete and,
    in the same transaction, creates the shipping record and assigns the
    guest identity.
    """

    event_type = StripeEvent.CHECKOUT_SESSION_COMPLETED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        transaction_id = get_transaction_id(event_data)
        if not transaction_id:
            return HandlerResult.fail(
                f"Checkout session for Order {order.id} has no payment intent"
            )

        customer_details = event_data.get("customer_details")
        if not customer_details:
            return HandlerResult.fail(
                f"Checkout session for Order {order.id} has no customer details"
            )

        rejection = first_rejection(
            self.require_status(order, OrderStatus.PENDING),
            self.check_transaction(order, transaction_id),
        )
        if rejection is not None:
            return rejection

        OrderPaymentService.record_payment(
            order.id,
            transaction_id=transaction_id,
            status=PaymentStatus.PAID,
            amount=event_data.get("amount_total"),
        )

        def post_update(updated: OrderDTO) -> None:
            shipping = ShippingService.create_shipping(updated.id, customer_details)
            if not shipping.success:
                logger.warning(
                    shipping.error,
                    extra={"order_id": str(updated.id), "error_code": shipping.error_code},
                )
            assign_guest(order, customer_details)

        OrderStatusService.change_status(
            order.id,
            StatusRule(
                from_status=OrderStatus.PENDING,
                to_status=OrderStatus.COMPLETE,
                post_update=post_update,
            ),
        )
        return HandlerResult.ok()


class CheckoutSessionExpiredHandler(PaymentEventHandler):
    """
    checkout.session.expired: the customer never paid.

    Resets any payment record to unpaid, moves the order pending -> expired,
    returns its items to stock and assigns the guest identity.
    """

    event_type = StripeEvent.CHECKOUT_SESSION_EXPIRED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        transaction_id = get_transaction_id(event_data)

        rejection = self.require_status(order, OrderStatus.PENDING)
        if rejection is not None:
            return rejection

        if order.payment is None:
            if transaction_id:
                return HandlerResult.fail(
                    f"Order {order.id} has no payment record for transaction {transaction_id}"
                )
        else:
            rejection = self.check_transaction(order, transaction_id)
            if rejection is not None:
                return rejection
            OrderPaymentService.update_payment(
                order.id,
                PaymentStatus.UNPAID,
                amount=event_data.get("amount_total"),
            )

        OrderStatusService.change_status(
            order.id,
            StatusRule(
                from_status=OrderStatus.PENDING,
                to_status=OrderStatus.EXPIRED,
                post_update=lambda updated: OrderService.revert_order_stocks(updated.id),
            ),
        )

        assign_guest(order, event_data.get("customer_details"))
        return HandlerResult.ok()


# =============================================================================
# Payment Intent Handlers
# =============================================================================


class PaymentIntentSucceededHandler(PaymentEventHandler):
    """
    payment_intent.succeeded: record the captured payment.

    No status change: checkout.session.completed drives pending -> complete.
    """

    event_type = StripeEvent.PAYMENT_INTENT_SUCCEEDED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        transaction_id = event_data.get("id")
        if not transaction_id:
            return HandlerResult.fail(f"Payment intent for Order {order.id} has no ID")

        rejection = first_rejection(
            self.require_status(order, OrderStatus.PENDING, OrderStatus.COMPLETE),
            self.check_transaction(order, transaction_id),
        )
        if rejection is not None:
            return rejection

        amount = event_data.get("amount_received")
        if amount is None:
            amount = event_data.get("amount")

        OrderPaymentService.record_payment(
            order.id,
            transaction_id=transaction_id,
            status=PaymentStatus.PAID,
            amount=amount,
        )
        return HandlerResult.ok()


class PaymentIntentFailedHandler(PaymentEventHandler):
    """
    payment_intent.payment_failed: record the failed attempt.

    The order stays pending; the customer may retry until the checkout
    session expires.
    """

    event_type = StripeEvent.PAYMENT_INTENT_FAILED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        transaction_id = event_data.get("id")
        if not transaction_id:
            return HandlerResult.fail(f"Payment intent for Order {order.id} has no ID")

        rejection = first_rejection(
            self.require_status(order, OrderStatus.PENDING),
            self.check_transaction(order, transaction_id),
        )
        if rejection is not None:
            return rejection

        OrderPaymentService.record_payment(
            order.id,
            transaction_id=transaction_id,
            status=PaymentStatus.FAILED,
            amount=event_data.get("amount"),
        )
        return HandlerResult.ok()


# =============================================================================
# Refund Handlers
# =============================================================================


class RefundEventHandler(PaymentEventHandler):
    """
    Shared checks for refund.* events.

    A refund event must name the refund and the payment intent, the order
    must have a payment record for that payment intent, and the order
    must be complete or already refunding.
    """

    def check_refund_event(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult | None:
        if not event_data.get("id"):
            return HandlerResult.fail(f"Refund event for Order {order.id} has no refund ID")

        transaction_id = get_transaction_id(event_data)
        if not transaction_id:
            return HandlerResult.fail(
                f"Refund event for Order {order.id} has no payment intent"
            )

        if order.payment is None:
            return HandlerResult.fail(f"Order {order.id} has no payment record")

        return first_rejection(
            self.check_transaction(order, transaction_id),
            self.require_status(order, OrderStatus.COMPLETE, OrderStatus.REFUNDING),
        )

    @staticmethod
    def load_open_refund(refund_id: str, order: OrderDTO):
        """
        Fetch a refund that belongs to ``order`` and still awaits a result.

        Returns:
            (refund, None) on success, (None, failed HandlerResult) otherwise
        """
        refund = RefundService.get_refund(refund_id, for_update=True)
        if refund is None:
            return None, HandlerResult.fail(f"Refund {refund_id} not found")
        if refund.order_id != order.id:
            return None, HandlerResult.fail(
                f"Refund {refund_id} does not belong to Order {order.id}"
            )
        if refund.status != RefundStatus.CREATED:
            return None, HandlerResult.fail(
                f"Refund {refund_id} is already {refund.status}"
            )
        return refund, None

    @staticmethod
    def close_refunding(order: OrderDTO) -> bool:
        """
        Move refunding -> refunded once every refund of the order has a result.

        Requires at least one completed refund; the payment is marked
        refunded in the same transaction. Refund results may arrive in any
        order, so both refund.updated and refund.failed call this.

        Returns:
            True when the order was (or already is) refunded
        """
        if RefundService.has_outstanding_refunds(order.id):
            return False
        if not RefundService.has_completed_refunds(order.id):
            return False

        OrderStatusService.change_status(
            order.id,
            StatusRule(
                from_status=OrderStatus.REFUNDING,
                to_status=OrderStatus.REFUNDED,
                post_update=lambda updated: OrderPaymentService.mark_refunded(updated.id),
            ),
        )
        return True


class RefundCreatedHandler(RefundEventHandler):
    """
    refund.created: record the refund and move complete -> refunding.

    Further partial refunds on a refunding order short-circuit the
    transition.
    """

    event_type = StripeEvent.REFUND_CREATED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        rejection = self.check_refund_event(event_data, order)
        if rejection is not None:
            return rejection

        refund_id = event_data["id"]
        if RefundService.get_refund(refund_id) is not None:
            return HandlerResult.fail(f"Refund {refund_id} already exists")

        RefundService.create_refund(order.id, refund_id, event_data.get("amount"))

        OrderStatusService.change_status(
            order.id,
            StatusRule(
                from_status=OrderStatus.COMPLETE,
                to_status=OrderStatus.REFUNDING,
            ),
        )
        return HandlerResult.ok()


class RefundUpdatedHandler(RefundEventHandler):
    """
    refund.updated: a refund succeeded.

    Marks the refund complete; once no refund of the order is outstanding
    the order moves refunding -> refunded and the payment is marked
    refunded.
    """

    event_type = StripeEvent.REFUND_UPDATED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        rejection = self.check_refund_event(event_data, order)
        if rejection is not None:
            return rejection

        refund_id = event_data["id"]
        refund, rejection = self.load_open_refund(refund_id, order)
        if rejection is not None:
            return rejection

        stripe_status = event_data.get("status")
        if stripe_status != "succeeded":
            return HandlerResult.fail(
                f"Refund update failed: Stripe event status is '{stripe_status}' "
                "instead of 'succeeded'."
            )

        RefundService.complete_refund(refund.refund_id)

        if not self.close_refunding(order):
            return HandlerResult.ok(
                f"Refund {refund_id} complete; Order {order.id} has refunds outstanding"
            )
        return HandlerResult.ok()


class RefundFailedHandler(RefundEventHandler):
    """
    refund.failed: record Stripe's failure reason on the refund.

    The order stays refunding unless this was the last open refund and
    another refund of the order already succeeded; then it moves to
    refunded. There is no refunding -> complete edge.
    """

    event_type = StripeEvent.REFUND_FAILED

    def process(self, event_data: dict[str, Any], order: OrderDTO) -> HandlerResult:
        rejection = self.check_refund_event(event_data, order)
        if rejection is not None:
            return rejection

        refund_id = event_data["id"]
        refund, rejection = self.load_open_refund(refund_id, order)
        if rejection is not None:
            return rejection

        RefundService.fail_refund(refund.refund_id, event_data.get("failure_reason"))

        # An earlier refund of the order may already have succeeded
        self.close_refunding(order)
        return HandlerResult.ok()


# =============================================================================
# Handler Sets
# =============================================================================


CHECKOUT_HANDLERS: tuple[type[PaymentEventHandler], ...] = (
    CheckoutSessionCompletedHandler,
    CheckoutSessionExpiredHandler,
)

PAYMENT_HANDLERS: tuple[type[PaymentEventHandler], ...] = (
    PaymentIntentSucceededHandler,
    PaymentIntentFailedHandler,
)

REFUND_HANDLERS: tuple[type[PaymentEventHandler], ...] = (
    RefundCreatedHandler,
    RefundUpdatedHandler,
    RefundFailedHandler,
)
