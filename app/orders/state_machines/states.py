"""
State enums for order models.

This module defines the order status enum used by the Order model with
django-fsm, plus the transition table the status engine guards against.

State Machine Overview:

Order Status:
    pending → complete → shipped → delivered   (happy path)
    pending → expired                          (checkout session expired)
    pending → canceled                         (customer/admin cancel)
    complete → refunding → refunded            (refund flow)
"""

from django.db import models


class OrderStatus(models.TextChoices):
    """
    States for the Order lifecycle.

    Terminal states: EXPIRED, CANCELED, DELIVERED, REFUNDED

    State Flow (Purchase):
        PENDING → COMPLETE → SHIPPED → DELIVERED

    Abandonment Flow:
        PENDING → EXPIRED
        PENDING → CANCELED

    Refund Flow:
        COMPLETE → REFUNDING → REFUNDED
    """

    PENDING = "pending", "Pending"
    COMPLETE = "complete", "Complete"
    EXPIRED = "expired", "Expired"
    CANCELED = "canceled", "Canceled"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    REFUNDING = "refunding", "Refunding"
    REFUNDED = "refunded", "Refunded"


# Allowed (from, to) edges; mirrors the @transition methods on Order.
ORDER_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.COMPLETE, OrderStatus.EXPIRED, OrderStatus.CANCELED}
    ),
    OrderStatus.COMPLETE: frozenset({OrderStatus.SHIPPED, OrderStatus.REFUNDING}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.REFUNDING: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.EXPIRED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def is_transition_allowed(from_status: str, to_status: str) -> bool:
    """Return True when ``from_status → to_status`` is a declared edge."""
    return to_status in ORDER_STATUS_TRANSITIONS.get(from_status, frozenset())
