"""
State machine enums and helpers for order models.
"""

from orders.state_machines.states import (
    ORDER_STATUS_TRANSITIONS,
    OrderStatus,
    is_transition_allowed,
)

__all__ = [
    "ORDER_STATUS_TRANSITIONS",
    "OrderStatus",
    "is_transition_allowed",
]
