"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class ShippingService(BaseService):
        @classmethod
        def create(cls, order_id, details) -> ServiceResult[Shipping]:
            if not details.get("email"):
                return ServiceResult.failure(
                    "Shipping email is required",
                    error_code="SHIPPING_EMAIL_REQUIRED",
                )

            with cls.atomic():
                shipping = Shipping.objects.create(order_id=order_id, **details)

            return ServiceResult.success(shipping)

Related:
    - core.exceptions: For unexpected/exceptional errors
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).
    Callers check ``success`` explicitly.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Example:
            shipping = Shipping.objects.create(order=order, email=email)
            return ServiceResult.success(shipping)
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
        """
        return cls(success=False, error=error, error_code=error_code)


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Nested calls create savepoints, so a service may be called from
        inside an outer handler transaction.

        Example:
            with cls.atomic():
                order.save()
                Book.objects.filter(pk=book_id).update(...)
        """
        with transaction.atomic():
            yield
