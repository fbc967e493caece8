"""
Tests for the Stripe webhook event handlers.

Each handler is called the way the processor calls it: with the event's
``data.object`` and the order DTO loaded for that event.
"""

from unittest.mock import patch

import pytest

from books.models import Book
from orders.models import Order, Shipping
from orders.services import OrderService
from orders.state_machines import OrderStatus
from payments.exceptions import WebhookHandlerError
from payments.models import OrderPayment, Refund
from payments.services import OrderPaymentService
from payments.state_machines import PaymentStatus, RefundStatus
from payments.tests.factories import OrderPaymentFactory, RefundFactory
from payments.webhooks.handlers import (
    CheckoutSessionCompletedHandler,
    CheckoutSessionExpiredHandler,
    PaymentIntentFailedHandler,
    PaymentIntentSucceededHandler,
    RefundCreatedHandler,
    RefundFailedHandler,
    RefundUpdatedHandler,
    get_transaction_id,
)


def status_of(order):
    return Order.objects.get(pk=order.pk).status


class TestGetTransactionId:
    def test_string(self):
        assert get_transaction_id({"payment_intent": "pi_1"}) == "pi_1"

    def test_expanded_object(self):
        assert get_transaction_id({"payment_intent": {"id": "pi_1"}}) == "pi_1"

    def test_missing(self):
        assert get_transaction_id({"payment_intent": None}) is None
        assert get_transaction_id({}) is None


# =============================================================================
# checkout.session.completed
# =============================================================================


class TestCheckoutSessionCompletedHandler:
    handler = CheckoutSessionCompletedHandler()

    def test_completes_order(self, pending_order, load_order, checkout_session):
        result = self.handler.handle(checkout_session(pending_order), load_order(pending_order))

        assert result.success is True
        assert result.log is None
        assert status_of(pending_order) == OrderStatus.COMPLETE
        payment = OrderPayment.objects.get(order=pending_order)
        assert payment.transaction_id == "pi_paid"
        assert payment.status == PaymentStatus.PAID
        assert payment.amount == 2500
        assert Shipping.objects.get(order=pending_order).city == "Springfield"

    def test_assigns_guest(self, guest_order, load_order, checkout_session):
        session = checkout_session(
            guest_order,
            customer_details={"email": " guest@x.com ", "name": " Gus Guest ", "address": {}},
        )

        result = self.handler.handle(session, load_order(guest_order))

        assert result.success is True
        guest_order.refresh_from_db()
        assert guest_order.guest_email == "guest@x.com"
        assert guest_order.guest_name == "Gus Guest"

    def test_registered_owner_not_reassigned(self, pending_order, load_order, checkout_session):
        with patch.object(OrderService, "assign_guest_to_order") as assign:
            self.handler.handle(checkout_session(pending_order), load_order(pending_order))

        assign.assert_not_called()

    def test_requires_pending(self, paid_order, load_order, checkout_session):
        result = self.handler.handle(checkout_session(paid_order), load_order(paid_order))

        assert result.success is False
        assert result.log == (
            f"Order {paid_order.id} must have a status of pending, but found complete"
        )

    def test_redelivery_leaves_paid_record_alone(self, paid_order, load_order, checkout_session):
        session = checkout_session(paid_order, payment_intent="pi_other", amount_total=1)

        result = self.handler.handle(session, load_order(paid_order))

        assert result.success is False
        payment = OrderPayment.objects.get(order=paid_order)
        assert (payment.transaction_id, payment.status, payment.amount) == (
            "pi_paid",
            PaymentStatus.PAID,
            2500,
        )
        assert not Shipping.objects.filter(order=paid_order).exists()

    def test_missing_payment_intent(self, pending_order, load_order, checkout_session):
        result = self.handler.handle(
            checkout_session(pending_order, payment_intent=None), load_order(pending_order)
        )

        assert result.success is False
        assert "no payment intent" in result.log
        assert status_of(pending_order) == OrderStatus.PENDING

    def test_missing_customer_details(self, pending_order, load_order, checkout_session):
        result = self.handler.handle(
            checkout_session(pending_order, customer_details={}), load_order(pending_order)
        )

        assert result.success is False
        assert "no customer details" in result.log

    def test_transaction_mismatch(self, pending_order, load_order, checkout_session):
        OrderPaymentFactory(order=pending_order, transaction_id="pi_other")

        result = self.handler.handle(checkout_session(pending_order), load_order(pending_order))

        assert result.success is False
        assert result.log.startswith("Transaction ID mismatch")
        assert status_of(pending_order) == OrderStatus.PENDING

    def test_unexpected_error_raises_handler_error(
        self, pending_order, load_order, checkout_session
    ):
        with patch.object(
            OrderPaymentService, "record_payment", side_effect=RuntimeError("db down")
        ):
            with pytest.raises(WebhookHandlerError) as exc_info:
                self.handler.handle(checkout_session(pending_order), load_order(pending_order))

        assert exc_info.value.message == (
            f"Failed to handle CheckoutSessionCompletedHandler event for Order "
            f"{pending_order.id}. An unexpected error occurred."
        )
        assert isinstance(exc_info.value.__cause__, RuntimeError)


# =============================================================================
# checkout.session.expired
# =============================================================================


class TestCheckoutSessionExpiredHandler:
    handler = CheckoutSessionExpiredHandler()

    def test_expires_and_restores_stock(self, pending_order, books, load_order, checkout_session):
        result = self.handler.handle(
            checkout_session(pending_order, payment_intent=None), load_order(pending_order)
        )

        assert result.success is True
        assert status_of(pending_order) == OrderStatus.EXPIRED
        assert Book.objects.get(pk=books[0].pk).stock_quantity == 7
        assert Book.objects.get(pk=books[1].pk).stock_quantity == 3

    def test_resets_existing_payment(self, pending_order, load_order, checkout_session):
        OrderPaymentFactory(
            order=pending_order, transaction_id="pi_1", status=PaymentStatus.FAILED, amount=2500
        )

        result = self.handler.handle(
            checkout_session(pending_order, payment_intent="pi_1", amount_total=100),
            load_order(pending_order),
        )

        assert result.success is True
        payment = OrderPayment.objects.get(order=pending_order)
        assert payment.status == PaymentStatus.UNPAID
        assert payment.amount == 100

    def test_complete_order_is_rejected(self, paid_order, load_order, checkout_session):
        with patch.object(OrderService, "update_status") as update_status, patch.object(
            OrderService, "revert_order_stocks"
        ) as revert:
            result = self.handler.handle(checkout_session(paid_order), load_order(paid_order))

        assert result.success is False
        assert "must have a status of pending, but found complete" in result.log
        update_status.assert_not_called()
        revert.assert_not_called()

    def test_guest_email_trimmed_and_blank_name_dropped(
        self, guest_order, load_order, checkout_session
    ):
        session = checkout_session(
            guest_order,
            payment_intent=None,
            customer_details={"email": " guest@x.com ", "name": "  "},
        )

        with patch.object(OrderService, "assign_guest_to_order") as assign:
            self.handler.handle(session, load_order(guest_order))

        assign.assert_called_once_with(guest_order.id, "guest@x.com", None)

    def test_guest_without_email_not_assigned(self, guest_order, load_order, checkout_session):
        session = checkout_session(
            guest_order, payment_intent=None, customer_details={"email": None}
        )

        with patch.object(OrderService, "assign_guest_to_order") as assign:
            result = self.handler.handle(session, load_order(guest_order))

        assert result.success is True
        assign.assert_not_called()

    def test_unknown_transaction_without_payment_record(
        self, pending_order, load_order, checkout_session
    ):
        result = self.handler.handle(
            checkout_session(pending_order, payment_intent="pi_new"), load_order(pending_order)
        )

        assert result.success is False
        assert "has no payment record for transaction pi_new" in result.log
        assert status_of(pending_order) == OrderStatus.PENDING

    def test_transaction_mismatch(self, pending_order, load_order, checkout_session):
        OrderPaymentFactory(order=pending_order, transaction_id="pi_1")

        result = self.handler.handle(
            checkout_session(pending_order, payment_intent="pi_2"), load_order(pending_order)
        )

        assert result.success is False
        assert result.log.startswith("Transaction ID mismatch")


# =============================================================================
# payment_intent.*
# =============================================================================


class TestPaymentIntentSucceededHandler:
    handler = PaymentIntentSucceededHandler()

    def test_records_payment_without_status_change(
        self, pending_order, load_order, payment_intent
    ):
        result = self.handler.handle(
            payment_intent(pending_order, intent_id="pi_1", amount_received=1999),
            load_order(pending_order),
        )

        assert result.success is True
        payment = OrderPayment.objects.get(order=pending_order)
        assert payment.status == PaymentStatus.PAID
        assert payment.amount == 1999
        assert status_of(pending_order) == OrderStatus.PENDING

    def test_falls_back_to_amount(self, pending_order, load_order, payment_intent):
        self.handler.handle(
            payment_intent(pending_order, intent_id="pi_1", amount_received=None, amount=1500),
            load_order(pending_order),
        )

        assert OrderPayment.objects.get(order=pending_order).amount == 1500

    def test_complete_order_accepted(self, paid_order, load_order, payment_intent):
        result = self.handler.handle(payment_intent(paid_order), load_order(paid_order))

        assert result.success is True

    def test_expired_order_rejected(self, pending_order, load_order, payment_intent):
        pending_order.status = OrderStatus.EXPIRED
        pending_order.save()

        result = self.handler.handle(payment_intent(pending_order), load_order(pending_order))

        assert result.success is False
        assert "must have a status of pending or complete, but found expired" in result.log

    def test_transaction_mismatch(self, paid_order, load_order, payment_intent):
        result = self.handler.handle(
            payment_intent(paid_order, intent_id="pi_other"), load_order(paid_order)
        )

        assert result.success is False
        assert OrderPayment.objects.get(order=paid_order).transaction_id == "pi_paid"

    def test_missing_id(self, pending_order, load_order, payment_intent):
        result = self.handler.handle(
            payment_intent(pending_order, intent_id=None), load_order(pending_order)
        )

        assert result.success is False


class TestPaymentIntentFailedHandler:
    handler = PaymentIntentFailedHandler()

    def test_records_failure(self, pending_order, load_order, payment_intent):
        result = self.handler.handle(
            payment_intent(pending_order, intent_id="pi_1"), load_order(pending_order)
        )

        assert result.success is True
        assert OrderPayment.objects.get(order=pending_order).status == PaymentStatus.FAILED
        assert status_of(pending_order) == OrderStatus.PENDING

    def test_complete_order_rejected(self, paid_order, load_order, payment_intent):
        result = self.handler.handle(payment_intent(paid_order), load_order(paid_order))

        assert result.success is False
        assert OrderPayment.objects.get(order=paid_order).status == PaymentStatus.PAID


# =============================================================================
# refund.*
# =============================================================================


class TestRefundCreatedHandler:
    handler = RefundCreatedHandler()

    def test_records_refund_and_starts_refunding(self, paid_order, load_order, refund_object):
        result = self.handler.handle(refund_object(paid_order), load_order(paid_order))

        assert result.success is True
        assert status_of(paid_order) == OrderStatus.REFUNDING
        refund = Refund.objects.get(refund_id="re_new")
        assert refund.order_id == paid_order.id
        assert refund.amount == 500
        assert refund.status == RefundStatus.CREATED

    def test_additional_refund_on_refunding_order(
        self, refunding_order, load_order, refund_object
    ):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_second"), load_order(refunding_order)
        )

        assert result.success is True
        assert status_of(refunding_order) == OrderStatus.REFUNDING
        assert Refund.objects.filter(order=refunding_order).count() == 2

    def test_duplicate_refund(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open"), load_order(refunding_order)
        )

        assert result.success is False
        assert result.log == "Refund re_open already exists"

    def test_order_without_payment(self, pending_order, load_order, refund_object):
        result = self.handler.handle(refund_object(pending_order), load_order(pending_order))

        assert result.success is False
        assert result.log == f"Order {pending_order.id} has no payment record"

    def test_transaction_mismatch(self, paid_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(paid_order, payment_intent="pi_other"), load_order(paid_order)
        )

        assert result.success is False
        assert result.log.startswith("Transaction ID mismatch")
        assert not Refund.objects.exists()

    def test_requires_complete_or_refunding(self, paid_order, load_order, refund_object):
        paid_order.status = OrderStatus.SHIPPED
        paid_order.save()

        result = self.handler.handle(refund_object(paid_order), load_order(paid_order))

        assert result.success is False
        assert "must have a status of complete or refunding, but found shipped" in result.log

    def test_missing_refund_id(self, paid_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(paid_order, refund_id=None), load_order(paid_order)
        )

        assert result.success is False
        assert "has no refund ID" in result.log


class TestRefundUpdatedHandler:
    handler = RefundUpdatedHandler()

    def test_last_refund_marks_order_refunded(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open", status="succeeded"),
            load_order(refunding_order),
        )

        assert result.success is True
        assert status_of(refunding_order) == OrderStatus.REFUNDED
        assert Refund.objects.get(refund_id="re_open").status == RefundStatus.COMPLETE
        assert (
            OrderPayment.objects.get(order=refunding_order).status == PaymentStatus.REFUNDED
        )

    def test_outstanding_refund_keeps_order_refunding(
        self, refunding_order, load_order, refund_object
    ):
        RefundFactory(order=refunding_order, refund_id="re_other")

        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open", status="succeeded"),
            load_order(refunding_order),
        )

        assert result.success is True
        assert "outstanding" in result.log
        assert status_of(refunding_order) == OrderStatus.REFUNDING

    def test_non_succeeded_status(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open", status="pending"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert result.log == (
            "Refund update failed: Stripe event status is 'pending' instead of 'succeeded'."
        )
        assert Refund.objects.get(refund_id="re_open").status == RefundStatus.CREATED

    def test_unknown_refund(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_missing", status="succeeded"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert result.log == "Refund re_missing not found"

    def test_refund_of_another_order(
        self, refunding_order, pending_order, load_order, refund_object
    ):
        RefundFactory(order=pending_order, refund_id="re_foreign")

        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_foreign", status="succeeded"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert "does not belong to" in result.log

    def test_already_complete(self, refunding_order, load_order, refund_object):
        Refund.objects.filter(refund_id="re_open").update(status=RefundStatus.COMPLETE)

        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open", status="succeeded"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert result.log == "Refund re_open is already complete"


class TestRefundFailedHandler:
    handler = RefundFailedHandler()

    def test_records_failure_and_keeps_status(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(
                refunding_order,
                refund_id="re_open",
                status="failed",
                failure_reason="expired_or_canceled_card",
            ),
            load_order(refunding_order),
        )

        assert result.success is True
        refund = Refund.objects.get(refund_id="re_open")
        assert refund.status == RefundStatus.FAILED
        assert refund.failure_reason == "expired_or_canceled_card"
        assert status_of(refunding_order) == OrderStatus.REFUNDING

    def test_already_failed(self, refunding_order, load_order, refund_object):
        Refund.objects.filter(refund_id="re_open").update(status=RefundStatus.FAILED)

        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_open", status="failed"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert result.log == "Refund re_open is already failed"

    def test_unknown_refund_rejected(self, refunding_order, load_order, refund_object):
        result = self.handler.handle(
            refund_object(refunding_order, refund_id="re_missing", status="failed"),
            load_order(refunding_order),
        )

        assert result.success is False
        assert result.log == "Refund re_missing not found"


class TestRefundResultOrdering:
    """Two refunds of one order settle the same way whichever result arrives first."""

    @pytest.fixture
    def two_refunds(self, refunding_order):
        RefundFactory(order=refunding_order, refund_id="re_second", amount=300)
        return refunding_order

    def succeed(self, order, refund_id, load_order, refund_object):
        return RefundUpdatedHandler().handle(
            refund_object(order, refund_id=refund_id, status="succeeded"), load_order(order)
        )

    def fail(self, order, refund_id, load_order, refund_object):
        return RefundFailedHandler().handle(
            refund_object(order, refund_id=refund_id, status="failed"), load_order(order)
        )

    def assert_refunded(self, order):
        assert status_of(order) == OrderStatus.REFUNDED
        assert OrderPayment.objects.get(order=order).status == PaymentStatus.REFUNDED

    def test_success_then_failure(self, two_refunds, load_order, refund_object):
        first = self.succeed(two_refunds, "re_open", load_order, refund_object)
        assert status_of(two_refunds) == OrderStatus.REFUNDING

        second = self.fail(two_refunds, "re_second", load_order, refund_object)

        assert (first.success, second.success) == (True, True)
        self.assert_refunded(two_refunds)

    def test_failure_then_success(self, two_refunds, load_order, refund_object):
        first = self.fail(two_refunds, "re_second", load_order, refund_object)
        assert status_of(two_refunds) == OrderStatus.REFUNDING

        second = self.succeed(two_refunds, "re_open", load_order, refund_object)

        assert (first.success, second.success) == (True, True)
        self.assert_refunded(two_refunds)

    def test_all_failed_keeps_order_refunding(self, two_refunds, load_order, refund_object):
        self.fail(two_refunds, "re_open", load_order, refund_object)
        self.fail(two_refunds, "re_second", load_order, refund_object)

        assert status_of(two_refunds) == OrderStatus.REFUNDING
        assert OrderPayment.objects.get(order=two_refunds).status == PaymentStatus.PAID
