"""
Payment domain models.

- OrderPayment: Payment record attached to an order
- Refund: Money returned to customers
"""

from payments.models.order_payment import OrderPayment
from payments.models.refund import Refund

__all__ = [
    "OrderPayment",
    "Refund",
]
