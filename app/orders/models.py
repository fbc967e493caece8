"""
Order, OrderItem and Shipping models for the order lifecycle.

Order is the central entity tracking a purchase from checkout through
delivery or refund. Status changes go through django-fsm transitions so
every edge of the lifecycle is declared in one place.

Usage:
    from orders.models import Order, OrderItem
    from orders.state_machines import OrderStatus

    order = Order.objects.create(owner=user, total_price=Decimal("25.00"))
    OrderItem.objects.create(order=order, book=book, quantity=2, price=book.price)

    # State transitions using django-fsm
    order.complete()  # pending -> complete
    order.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from orders.state_machines import OrderStatus


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer order.

    State Flow:
        PENDING -> COMPLETE -> SHIPPED -> DELIVERED
        PENDING -> EXPIRED / CANCELED
        COMPLETE -> REFUNDING -> REFUNDED

    Fields:
        owner: Registered user who placed the order (null for guest checkout)
        guest_email/guest_name: Guest identity, assigned at most once
        total_price: Order total at checkout time
        status: Current FSM status
        version: Optimistic locking version

    Note:
        The version field is auto-incremented on save so concurrent
        writers can detect that the row changed underneath them.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Registered user who placed the order (null for guests)",
    )

    # ==========================================================================
    # Guest Identity
    # ==========================================================================

    guest_email = models.EmailField(
        null=True,
        blank=True,
        help_text="Guest e-mail captured from the checkout session",
    )

    guest_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Guest name captured from the checkout session",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Order total at checkout time",
    )

    status = FSMField(
        default=OrderStatus.PENDING,
        choices=OrderStatus.choices,
        db_index=True,
        help_text="Current status of the order (managed by FSM)",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["owner", "status"], name="order_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, {self.total_price})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.

        On update (not force_insert), atomically increments the version
        field to detect concurrent modifications.
        """
        is_update = (
            not self._state.adding and self.pk and not kwargs.get("force_insert", False)
        )
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @property
    def is_guest(self) -> bool:
        return self.owner_id is None

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.COMPLETE,
    )
    def complete(self):
        """
        Transition: PENDING -> COMPLETE

        Called when the checkout session completes and payment is captured.
        """
        pass

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.EXPIRED,
    )
    def expire(self):
        """
        Transition: PENDING -> EXPIRED

        Called when the checkout session expires without payment.
        """
        pass

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.CANCELED,
    )
    def cancel(self):
        """Transition: PENDING -> CANCELED"""
        pass

    @transition(
        field=status,
        source=OrderStatus.COMPLETE,
        target=OrderStatus.SHIPPED,
    )
    def ship(self):
        """Transition: COMPLETE -> SHIPPED"""
        pass

    @transition(
        field=status,
        source=OrderStatus.SHIPPED,
        target=OrderStatus.DELIVERED,
    )
    def deliver(self):
        """Transition: SHIPPED -> DELIVERED"""
        pass

    @transition(
        field=status,
        source=OrderStatus.COMPLETE,
        target=OrderStatus.REFUNDING,
    )
    def start_refund(self):
        """
        Transition: COMPLETE -> REFUNDING

        Called when the first refund for the order is created.
        """
        pass

    @transition(
        field=status,
        source=OrderStatus.REFUNDING,
        target=OrderStatus.REFUNDED,
    )
    def mark_refunded(self):
        """
        Transition: REFUNDING -> REFUNDED

        Called once every outstanding refund has succeeded.
        """
        pass


class OrderItem(BaseModel):
    """
    A single line of an order.

    Fields:
        order: Parent order
        book: Purchased book
        quantity: Units purchased (restored to stock on cancel/expiry)
        price: Unit price snapshot at checkout
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Order this line belongs to",
    )

    book = models.ForeignKey(
        "books.Book",
        on_delete=models.PROTECT,
        related_name="order_items",
        help_text="Purchased book",
    )

    quantity = models.PositiveIntegerField(
        help_text="Units purchased",
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Unit price at checkout time",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_item_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"OrderItem({self.book_id} x{self.quantity})"


class Shipping(BaseModel):
    """
    Shipping details captured from a completed checkout session.

    Fields:
        order: Order being shipped (one shipping record per order)
        email/name/phone: Recipient contact details
        line1..country: Postal address
        tracking_id: Carrier tracking id, set when the order ships
    """

    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        related_name="shipping",
        help_text="Order being shipped",
    )

    email = models.EmailField(help_text="Recipient e-mail")
    name = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")

    line1 = models.CharField(max_length=255, blank=True, default="")
    line2 = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=120, blank=True, default="")
    state = models.CharField(max_length=120, blank=True, default="")
    postal_code = models.CharField(max_length=20, blank=True, default="")
    country = models.CharField(max_length=2, blank=True, default="")

    tracking_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Carrier tracking id (set on shipment)",
    )

    class Meta:
        verbose_name = "Shipping"
        verbose_name_plural = "Shipping"

    def __str__(self) -> str:
        return f"Shipping({self.order_id}, {self.email})"
