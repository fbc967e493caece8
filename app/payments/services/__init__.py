"""
Payment services.

- OrderPaymentService: Order payment record create/update
- RefundService: Refund record create/transition
"""

from payments.services.order_payment_service import OrderPaymentService
from payments.services.refund_service import RefundService

__all__ = [
    "OrderPaymentService",
    "RefundService",
]
