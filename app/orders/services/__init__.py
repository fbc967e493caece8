"""
Order services.
"""

from orders.services.order_service import OrderService
from orders.services.shipping_service import ShippingService
from orders.services.status_service import OrderStatusService

__all__ = [
    "OrderService",
    "OrderStatusService",
    "ShippingService",
]
