"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)

__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "RefundStatus",
]
