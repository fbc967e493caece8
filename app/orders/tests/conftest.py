"""
Pytest fixtures for order tests.

Orders are provided in each lifecycle status, with two line items so
stock reversal can be checked per item.

Usage:
    def test_cancel(pending_order):
        OrderStatusService.cancel_order(pending_order.id)
"""

import pytest

from authentication.tests.factories import UserFactory
from books.tests.factories import BookFactory
from orders.state_machines import OrderStatus
from orders.tests.factories import OrderFactory, OrderItemFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory(name="Ada Reader", email="ada@example.com")


# =============================================================================
# Book Fixtures
# =============================================================================


@pytest.fixture
def books(db):
    """Two books with known stock levels."""
    return [
        BookFactory(title="Dune", stock_quantity=5),
        BookFactory(title="Emma", stock_quantity=2),
    ]


# =============================================================================
# Order Fixtures
# =============================================================================


def _order_with_items(status, owner, books):
    order = OrderFactory(status=status, owner=owner)
    OrderItemFactory(order=order, book=books[0], quantity=2)
    OrderItemFactory(order=order, book=books[1], quantity=1)
    return order


@pytest.fixture
def pending_order(db, user, books):
    """PENDING order with two line items (2x Dune, 1x Emma)."""
    return _order_with_items(OrderStatus.PENDING, user, books)


@pytest.fixture
def complete_order(db, user, books):
    return _order_with_items(OrderStatus.COMPLETE, user, books)


@pytest.fixture
def shipped_order(db, user, books):
    return _order_with_items(OrderStatus.SHIPPED, user, books)


@pytest.fixture
def guest_order(db, books):
    """PENDING order without owner or guest identity."""
    return _order_with_items(OrderStatus.PENDING, None, books)
