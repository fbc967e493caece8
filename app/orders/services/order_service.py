"""
Order persistence service.

OrderService is the only code that writes order status, stock levels and
guest identity. Everything above it (the status engine, webhook handlers)
works with OrderDTO snapshots.

Usage:
    from orders.services import OrderService

    order = OrderService.get_order(order_id)
    if order is None:
        ...

    OrderService.update_status(order.id, OrderStatus.EXPIRED)
    OrderService.revert_order_stocks(order.id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from django.db.models import F
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from core.services import BaseService
from books.models import Book
from orders.exceptions import (
    GuestAssignmentError,
    OrderNotFoundError,
    OrderUpdateError,
    StockReversalError,
)
from orders.models import Order, OrderItem
from orders.types import (
    OrderDTO,
    OrderItemDTO,
    OrderOwner,
    PaymentDTO,
    ShippingDTO,
)

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)


class OrderService(BaseService):
    """
    Loading, status persistence and stock bookkeeping for orders.

    All methods are classmethods; the service holds no state.
    """

    # =========================================================================
    # Reads
    # =========================================================================

    @classmethod
    def get_order(cls, order_id: UUID | str, for_update: bool = False) -> OrderDTO | None:
        """
        Load an order as a DTO.

        Args:
            order_id: Order UUID (string form accepted)
            for_update: Lock the order row until the surrounding
                transaction ends

        Returns:
            OrderDTO, or None when the order does not exist or the id
            is not a valid UUID
        """
        order = cls._fetch(order_id, for_update=for_update)
        if order is None:
            return None
        return cls.to_dto(order)

    @classmethod
    def to_dto(cls, order: Order) -> OrderDTO:
        """Build an OrderDTO from a model instance."""
        items = [
            OrderItemDTO(
                book_id=item.book_id,
                title=item.book.title,
                quantity=item.quantity,
                price=item.price,
            )
            for item in OrderItem.objects.filter(order_id=order.pk).select_related("book")
        ]

        return OrderDTO(
            id=order.pk,
            status=order.status,
            owner=cls._build_owner(order),
            items=items,
            price=order.total_price,
            shipping=cls._build_shipping(order),
            payment=cls._build_payment(order),
            version=order.version,
        )

    @staticmethod
    def mail_context(order: OrderDTO) -> dict[str, Any]:
        """
        Recipient fields for an order notification.

        Returns:
            Dict with orderId, email and username keys. email/username
            are None when the order has no known owner; username falls back
            to the e-mail address for guests who gave no name.
        """
        return {
            "orderId": str(order.id),
            "email": order.owner.email if order.owner else None,
            "username": (order.owner.name or order.owner.email) if order.owner else None,
        }

    # =========================================================================
    # Writes
    # =========================================================================

    @classmethod
    def update_status(cls, order_id: UUID | str, status: str) -> OrderDTO:
        """
        Persist a new status by applying the matching FSM transition.

        Args:
            order_id: Order UUID
            status: Target OrderStatus value

        Returns:
            Updated OrderDTO

        Raises:
            OrderNotFoundError: If the order does not exist
            OrderUpdateError: If no transition leads to ``status`` or the
                write fails
        """
        try:
            with cls.atomic():
                order = cls._fetch(order_id, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)

                transition = next(
                    (
                        t
                        for t in order.get_available_status_transitions()
                        if t.target == status
                    ),
                    None,
                )
                if transition is None:
                    raise TransitionNotAllowed(
                        f"No transition from '{order.status}' to '{status}'"
                    )

                getattr(order, transition.name)()
                order.save(update_fields=["status", "version", "updated_at"])
        except OrderNotFoundError:
            raise
        except Exception as exc:
            logger.error(
                f"Failed to update status for order {order_id}",
                extra={"order_id": str(order_id), "status": str(status), "error": str(exc)},
            )
            raise OrderUpdateError(
                f"Failed to update status of order {order_id} to '{status}'",
                details={"order_id": str(order_id), "status": str(status)},
            ) from exc

        logger.info(
            f"Order {order_id} status updated to {status}",
            extra={"order_id": str(order_id), "status": str(status), "version": order.version},
        )
        return cls.to_dto(order)

    @classmethod
    def revert_order_stocks(cls, order_id: UUID | str) -> None:
        """
        Return every line item's quantity to its book's stock.

        Runs as one atomic block: one increment per line item, all or
        nothing.

        Raises:
            StockReversalError: If any increment fails
        """
        try:
            with cls.atomic():
                items = list(
                    OrderItem.objects.filter(order_id=order_id).values_list(
                        "book_id", "quantity"
                    )
                )
                for book_id, quantity in items:
                    cls._increment_stock(book_id, quantity)
        except Exception as exc:
            logger.error(
                f"Failed to revert stock for order {order_id}",
                extra={"order_id": str(order_id), "error": str(exc)},
            )
            raise StockReversalError(
                f"Failed to revert stock for order {order_id}",
                details={"order_id": str(order_id)},
            ) from exc

        logger.info(
            f"Reverted stock for {len(items)} item(s) of order {order_id}",
            extra={"order_id": str(order_id), "item_count": len(items)},
        )

    @classmethod
    def assign_guest_to_order(
        cls,
        order_id: UUID | str,
        email: str,
        name: str | None,
    ) -> bool:
        """
        Attach a guest identity to an ownerless order.

        The update is conditional: it only matches orders with no owner
        and no guest identity yet, so it applies at most once.

        Returns:
            True if the identity was written, False if the order already
            has an owner or guest identity

        Raises:
            GuestAssignmentError: If the write fails
        """
        try:
            updated = Order.objects.filter(
                pk=order_id,
                owner__isnull=True,
                guest_email__isnull=True,
            ).update(guest_email=email, guest_name=name, updated_at=timezone.now())
        except Exception as exc:
            raise GuestAssignmentError(
                f"Failed to assign guest to order {order_id}",
                details={"order_id": str(order_id)},
            ) from exc

        if not updated:
            logger.info(
                f"Order {order_id} already has an owner or guest, skipping assignment",
                extra={"order_id": str(order_id)},
            )
            return False

        logger.info(
            f"Assigned guest to order {order_id}",
            extra={"order_id": str(order_id)},
        )
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    @classmethod
    def _fetch(cls, order_id: UUID | str, for_update: bool = False) -> Order | None:
        queryset = Order.objects.select_related("owner")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        try:
            return queryset.filter(pk=order_id).first()
        except (ValueError, DjangoValidationError):
            logger.warning(
                f"Malformed order id: {order_id!r}",
                extra={"order_id": str(order_id)},
            )
            return None

    @staticmethod
    def _increment_stock(book_id: UUID, quantity: int) -> None:
        Book.objects.filter(pk=book_id).update(
            stock_quantity=F("stock_quantity") + quantity
        )

    @staticmethod
    def _build_owner(order: Order) -> OrderOwner | None:
        if order.owner_id:
            user = order.owner
            return OrderOwner(id=user.pk, name=user.get_full_name(), email=user.email)
        if order.guest_email:
            return OrderOwner(id=None, name=order.guest_name, email=order.guest_email)
        return None

    @staticmethod
    def _build_shipping(order: Order) -> ShippingDTO | None:
        try:
            shipping = order.shipping
        except ObjectDoesNotExist:
            return None
        return ShippingDTO(
            email=shipping.email,
            name=shipping.name,
            phone=shipping.phone,
            line1=shipping.line1,
            line2=shipping.line2,
            city=shipping.city,
            state=shipping.state,
            postal_code=shipping.postal_code,
            country=shipping.country,
            tracking_id=shipping.tracking_id,
        )

    @staticmethod
    def _build_payment(order: Order) -> PaymentDTO | None:
        try:
            payment = order.payment
        except ObjectDoesNotExist:
            return None
        return PaymentDTO(
            transaction_id=payment.transaction_id,
            status=payment.status,
            amount=payment.amount,
            method=payment.method,
        )
