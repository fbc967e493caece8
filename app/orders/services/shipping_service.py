"""
Shipping record service.

Creates the shipping record for an order from the ``customer_details``
block of a completed Stripe checkout session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult
from orders.exceptions import ShippingError
from orders.models import Shipping

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)

# Stripe address keys -> Shipping fields
ADDRESS_FIELDS = {
    "line1": "line1",
    "line2": "line2",
    "city": "city",
    "state": "state",
    "postal_code": "postal_code",
    "country": "country",
}


class ShippingService(BaseService):
    """Shipping record creation."""

    @classmethod
    def create_shipping(
        cls,
        order_id: UUID | str,
        customer_details: dict[str, Any],
    ) -> ServiceResult[Shipping]:
        """
        Create (or refresh) the shipping record for an order.

        Args:
            order_id: Order UUID
            customer_details: Stripe ``customer_details`` object with
                email, name, phone and address

        Returns:
            ServiceResult with the Shipping instance, or a failure when
            no e-mail is available

        Raises:
            ShippingError: If the record could not be written
        """
        email = (customer_details.get("email") or "").strip()
        if not email:
            return ServiceResult.failure(
                f"Order {order_id}: checkout session has no customer e-mail",
                error_code="SHIPPING_EMAIL_REQUIRED",
            )

        address = customer_details.get("address") or {}
        defaults = {
            "email": email,
            "name": (customer_details.get("name") or "").strip(),
            "phone": (customer_details.get("phone") or "").strip(),
        }
        for source, target in ADDRESS_FIELDS.items():
            defaults[target] = address.get(source) or ""

        try:
            with cls.atomic():
                shipping, created = Shipping.objects.update_or_create(
                    order_id=order_id,
                    defaults=defaults,
                )
        except Exception as exc:
            raise ShippingError(
                f"Failed to create shipping for order {order_id}",
                details={"order_id": str(order_id)},
            ) from exc

        logger.info(
            f"{'Created' if created else 'Updated'} shipping for order {order_id}",
            extra={"order_id": str(order_id)},
        )
        return ServiceResult.success(shipping)
