"""
Catalogue models.

Only the fields the order lifecycle touches are modelled here: a title
for notifications, the list price, and the stock counter that checkout
decrements and order cancellation/expiry restores.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class Book(UUIDPrimaryKeyMixin, BaseModel):
    """
    A purchasable book.

    Fields:
        title: Display title
        price: Current list price
        stock_quantity: Units available for sale

    Note:
        Stock is always adjusted with ``F()`` expressions so concurrent
        order workers never lose increments.
    """

    title = models.CharField(
        max_length=255,
        help_text="Book title",
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Current list price",
    )

    stock_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units available for sale",
    )

    class Meta:
        ordering = ["title"]
        verbose_name = "Book"
        verbose_name_plural = "Books"

    def __str__(self) -> str:
        return f"Book({self.title}, stock={self.stock_quantity})"
