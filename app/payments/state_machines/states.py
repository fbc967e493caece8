"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

OrderPayment Status:
    unpaid → paid → refunded
    unpaid → failed
    (checkout expiry resets an existing record to unpaid)

Refund Status:
    created → complete
    created → failed
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Status of the payment record attached to an order.

    Written only by the Stripe reconciliation handlers.
    """

    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Card"


class RefundStatus(models.TextChoices):
    """
    States for the Refund lifecycle.

    Terminal states: COMPLETE, FAILED

    State Flow:
        CREATED → COMPLETE  (refund.updated with status=succeeded)
        CREATED → FAILED    (refund.failed)
    """

    CREATED = "created", "Created"
    COMPLETE = "complete", "Complete"
    FAILED = "failed", "Failed"
