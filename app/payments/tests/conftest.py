"""
Pytest fixtures for payment tests.

Provides orders in the states the webhook handlers guard on, plus
Stripe event payload builders matching the ``data.object`` shapes of
checkout sessions, payment intents and refunds.

Usage:
    def test_expired(pending_order, checkout_session):
        session = checkout_session(pending_order, payment_intent=None)
"""

import pytest

from authentication.tests.factories import UserFactory
from books.tests.factories import BookFactory
from orders.services import OrderService
from orders.state_machines import OrderStatus
from orders.tests.factories import OrderFactory, OrderItemFactory
from payments.state_machines import PaymentStatus
from payments.tests.factories import OrderPaymentFactory, RefundFactory


# =============================================================================
# User and Book Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory(name="Ada Reader", email="ada@example.com")


@pytest.fixture
def books(db):
    return [
        BookFactory(title="Dune", stock_quantity=5),
        BookFactory(title="Emma", stock_quantity=2),
    ]


# =============================================================================
# Order Fixtures
# =============================================================================


def _order_with_items(books, **kwargs):
    order = OrderFactory(**kwargs)
    OrderItemFactory(order=order, book=books[0], quantity=2)
    OrderItemFactory(order=order, book=books[1], quantity=1)
    return order


@pytest.fixture
def pending_order(db, user, books):
    """PENDING order with two line items and no payment record."""
    return _order_with_items(books, owner=user, status=OrderStatus.PENDING)


@pytest.fixture
def guest_order(db, books):
    """PENDING guest order with no identity yet."""
    return _order_with_items(books, owner=None, status=OrderStatus.PENDING)


@pytest.fixture
def paid_order(db, user, books):
    """COMPLETE order with a PAID payment record (pi_paid)."""
    order = _order_with_items(books, owner=user, status=OrderStatus.COMPLETE)
    OrderPaymentFactory(
        order=order,
        transaction_id="pi_paid",
        status=PaymentStatus.PAID,
        amount=2500,
    )
    return order


@pytest.fixture
def refunding_order(db, paid_order):
    """REFUNDING order with one outstanding refund (re_open)."""
    paid_order.status = OrderStatus.REFUNDING
    paid_order.save()
    RefundFactory(order=paid_order, refund_id="re_open", amount=500)
    return paid_order


@pytest.fixture
def load_order():
    """Reload an order as the DTO handlers receive."""

    def _load(order):
        return OrderService.get_order(order.id)

    return _load


# =============================================================================
# Stripe Payload Fixtures
# =============================================================================


@pytest.fixture
def checkout_session():
    """Build a checkout.session.* ``data.object`` for an order."""

    def _build(order, payment_intent="pi_paid", customer_details=None, **extra):
        session = {
            "id": "cs_test_123",
            "object": "checkout.session",
            "payment_intent": payment_intent,
            "amount_total": 2500,
            "metadata": {"orderId": str(order.id)},
            "customer_details": customer_details
            if customer_details is not None
            else {
                "email": "ada@example.com",
                "name": "Ada Reader",
                "phone": "+15550100",
                "address": {
                    "line1": "1 Library Lane",
                    "line2": None,
                    "city": "Springfield",
                    "state": "IL",
                    "postal_code": "62701",
                    "country": "US",
                },
            },
        }
        session.update(extra)
        return session

    return _build


@pytest.fixture
def payment_intent():
    """Build a payment_intent.* ``data.object`` for an order."""

    def _build(order, intent_id="pi_paid", **extra):
        intent = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": 2500,
            "amount_received": 2500,
            "metadata": {"orderId": str(order.id)},
        }
        intent.update(extra)
        return intent

    return _build


@pytest.fixture
def refund_object():
    """Build a refund.* ``data.object`` for an order."""

    def _build(order, refund_id="re_new", payment_intent="pi_paid", **extra):
        refund = {
            "id": refund_id,
            "object": "refund",
            "amount": 500,
            "payment_intent": payment_intent,
            "status": "pending",
            "metadata": {"orderId": str(order.id)},
        }
        refund.update(extra)
        return refund

    return _build
