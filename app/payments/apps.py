"""
Payments app configuration.

Payment and refund records for orders, and the workers that reconcile
them from Stripe webhook events.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
