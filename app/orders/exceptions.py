"""
Order-specific exceptions.

Exception Hierarchy:
    OrderError (base for order domain)
    ├── OrderNotFoundError - Order lookup failures (also NotFoundError)
    ├── OrderUpdateError - Status persistence failures
    ├── StockReversalError - Stock restoration failures
    ├── GuestAssignmentError - Guest identity persistence failures
    ├── ShippingError - Shipping record failures
    ├── OrderCancellationError - cancel_order() failures
    ├── OrderShipmentError - ship_order() failures
    └── OrderDeliveryError - deliver_order() failures

    InvalidTransitionError - Guard rejected a status change (inherits ConflictError)

Usage:
    from orders.exceptions import InvalidTransitionError, OrderNotFoundError

    try:
        OrderStatusService.cancel_order(order_id)
    except OrderCancellationError as e:
        logger.warning(str(e), extra={"cause": repr(e.__cause__)})
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ConflictError, NotFoundError


# =============================================================================
# Order Domain Exceptions
# =============================================================================


class OrderError(BaseApplicationError):
    """Base exception for all order operations."""

    default_error_code: str = "ORDER_ERROR"


class OrderNotFoundError(OrderError, NotFoundError):
    """Raised when an order id does not resolve to an order."""

    default_error_code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id, **kwargs):
        self.order_id = order_id
        super().__init__(
            f"Order {order_id} not found",
            details={"order_id": str(order_id)},
            **kwargs,
        )


class OrderUpdateError(OrderError):
    """Raised when a status change could not be persisted."""

    default_error_code: str = "ORDER_UPDATE_FAILED"


class StockReversalError(OrderError):
    """Raised when restoring stock for an order's line items fails."""

    default_error_code: str = "STOCK_REVERSAL_FAILED"


class GuestAssignmentError(OrderError):
    """Raised when the guest identity could not be written."""

    default_error_code: str = "GUEST_ASSIGNMENT_FAILED"


class ShippingError(OrderError):
    """Raised when a shipping record could not be created or updated."""

    default_error_code: str = "SHIPPING_ERROR"


class OrderCancellationError(OrderError):
    default_error_code: str = "ORDER_CANCELLATION_FAILED"


class OrderShipmentError(OrderError):
    default_error_code: str = "ORDER_SHIPMENT_FAILED"


class OrderDeliveryError(OrderError):
    default_error_code: str = "ORDER_DELIVERY_FAILED"


# =============================================================================
# Transition Guard Exceptions
# =============================================================================


class InvalidTransitionError(ConflictError):
    """
    Raised when an order is not in the status a transition requires.

    The message names the expected source status, the requested target
    and the actual current status, e.g.:

        Order must be in 'pending' status to change to 'canceled'. Current: 'shipped'
    """

    default_error_code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str, current_status: str, **kwargs):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        self.current_status = str(current_status)
        super().__init__(
            f"Order must be in '{self.from_status}' status to change to "
            f"'{self.to_status}'. Current: '{self.current_status}'",
            details={
                "from_status": self.from_status,
                "to_status": self.to_status,
                "current_status": self.current_status,
            },
            **kwargs,
        )
