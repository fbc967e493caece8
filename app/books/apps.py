"""
Books app configuration.

This app owns the catalogue entries whose stock levels are adjusted
when orders are canceled or expire.
"""

from django.apps import AppConfig


class BooksConfig(AppConfig):
    """Configuration for the books application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "books"
    verbose_name = "Books"
