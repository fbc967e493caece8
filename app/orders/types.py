"""
Type definitions for the order service layer.

Services hand these plain dataclasses to handlers and tasks instead of
model instances, so callers never trigger lazy queries outside the
transaction that loaded the order.

Usage:
    from orders.types import OrderDTO, StatusRule

    rule = StatusRule(
        from_status=OrderStatus.PENDING,
        to_status=OrderStatus.CANCELED,
        post_update=lambda order: OrderService.revert_order_stocks(order.id),
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Callable
from uuid import UUID

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class OrderOwner:
    """
    Who an order belongs to.

    ``id`` is None for guest orders, whose name/email come from the
    guest identity captured at checkout.
    """

    id: UUID | None
    name: str | None
    email: str | None


@dataclass(frozen=True)
class OrderItemDTO:
    book_id: UUID
    title: str
    quantity: int
    price: Decimal


@dataclass(frozen=True)
class ShippingDTO:
    email: str
    name: str
    phone: str
    line1: str
    line2: str
    city: str
    state: str
    postal_code: str
    country: str
    tracking_id: str | None = None


@dataclass(frozen=True)
class PaymentDTO:
    """Snapshot of the order's payment record."""

    transaction_id: str
    status: str
    amount: int
    method: str


@dataclass(frozen=True)
class OrderDTO:
    """
    Read model for an order.

    Attributes:
        id: Order UUID
        status: Current OrderStatus value
        owner: Registered user or guest identity (None when neither is known)
        items: Line items
        price: Order total
        shipping: Shipping details (None until checkout completes)
        payment: Payment record (None until a transaction is associated)
        version: Optimistic locking version at load time
    """

    id: UUID
    status: str
    owner: OrderOwner | None
    items: list[OrderItemDTO] = field(default_factory=list)
    price: Decimal = Decimal("0")
    shipping: ShippingDTO | None = None
    payment: PaymentDTO | None = None
    version: int = 1

    @property
    def is_guest(self) -> bool:
        return self.owner is None or self.owner.id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "status": str(self.status),
            "owner": (
                {
                    "id": str(self.owner.id) if self.owner.id else None,
                    "name": self.owner.name,
                    "email": self.owner.email,
                }
                if self.owner
                else None
            ),
            "price": str(self.price),
        }


@dataclass(frozen=True)
class StatusRule:
    """
    A guarded status change.

    Attributes:
        from_status: Status the order must currently be in
        to_status: Status to move to
        validate: Optional check run before the write; raise to abort
        post_update: Optional side effect run after the write, inside the
            same transaction
    """

    from_status: str
    to_status: str
    validate: Callable[[OrderDTO], None] | None = None
    post_update: Callable[[OrderDTO], None] | None = None
