"""
Tests for order models.

Covers the optimistic-locking version counter, guest detection and
the line item constraints.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from orders.models import Order
from orders.state_machines import OrderStatus
from orders.tests.factories import OrderFactory, OrderItemFactory, ShippingFactory


class TestOrderModel:
    def test_new_order_defaults(self, db):
        order = OrderFactory()

        assert order.status == OrderStatus.PENDING
        assert order.version == 1
        assert order.total_price == Decimal("25.00")

    def test_version_incremented_on_update(self, db):
        order = OrderFactory()

        order.total_price = Decimal("30.00")
        order.save()

        assert order.version == 2
        order.refresh_from_db()
        assert order.version == 2

    def test_version_not_incremented_on_create(self, db):
        order = OrderFactory()

        assert Order.objects.get(pk=order.pk).version == 1

    def test_is_guest(self, db):
        assert OrderFactory(owner=None).is_guest is True
        assert OrderFactory().is_guest is False

    def test_str_includes_status(self, db):
        order = OrderFactory()

        assert "pending" in str(order)


class TestOrderItemModel:
    def test_items_related_to_order(self, db):
        order = OrderFactory()
        OrderItemFactory(order=order, quantity=2)
        OrderItemFactory(order=order, quantity=1)

        assert order.items.count() == 2

    def test_price_defaults_to_book_price(self, db):
        item = OrderItemFactory()

        assert item.price == item.book.price

    def test_zero_quantity_rejected(self, db):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                OrderItemFactory(quantity=0)


class TestShippingModel:
    def test_one_shipping_record_per_order(self, db):
        shipping = ShippingFactory()

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                ShippingFactory(order=shipping.order)

    def test_tracking_id_optional(self, db):
        assert ShippingFactory().tracking_id is None
