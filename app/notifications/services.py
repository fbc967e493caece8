"""
Templated e-mail delivery.

MailService renders a template registered in settings.EMAIL_TEMPLATES
and sends it with Django's mail framework. Template files live under
``notifications/templates/mail/`` as ``<name>.txt`` with an optional
``<name>.html`` alternative.

Configuration:
    - EMAIL_TEMPLATES: {template_key: {"subject": ..., "template": ...}}
    - COMPANY_NAME, SUPPORT_EMAIL: added to every template context
    - DEFAULT_FROM_EMAIL: sender address

Usage:
    from notifications.services import MailService

    MailService.send_templated_email(
        "orderShipped",
        "reader@example.com",
        {"customer_name": "Ada", "order_id": "...", "tracking_id": "1Z999"},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from core.services import BaseService
from notifications.exceptions import MailDeliveryError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class MailService(BaseService):
    """Render and send templated e-mails."""

    @classmethod
    def send_templated_email(
        cls,
        template_key: str,
        recipient: str,
        fields: dict[str, Any],
    ) -> None:
        """
        Send one templated e-mail.

        Args:
            template_key: Key into settings.EMAIL_TEMPLATES
            recipient: Destination address
            fields: Template context

        Raises:
            MailDeliveryError: Unknown template, rendering or SMTP failure
        """
        config = settings.EMAIL_TEMPLATES.get(str(template_key))
        if config is None:
            raise MailDeliveryError(
                f"No e-mail template configured for '{template_key}'",
                details={"template": str(template_key)},
            )

        context = {
            "company_name": settings.COMPANY_NAME,
            "support_email": settings.SUPPORT_EMAIL,
            **fields,
        }
        template_name = f"mail/{config['template']}"

        try:
            subject = config["subject"].format(**context)
            text_body = render_to_string(f"{template_name}.txt", context)
            try:
                html_body = render_to_string(f"{template_name}.html", context)
            except TemplateDoesNotExist:
                html_body = None

            message = EmailMultiAlternatives(
                subject=subject,
                body=text_body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                to=[recipient],
            )
            if html_body:
                message.attach_alternative(html_body, "text/html")
            message.send(fail_silently=False)
        except Exception as exc:
            logger.error(
                f"Failed to send {template_key} e-mail: {exc}",
                extra={"template": str(template_key)},
            )
            raise MailDeliveryError(
                f"Failed to send '{template_key}' e-mail",
                details={"template": str(template_key)},
            ) from exc

        logger.info(
            f"Sent {template_key} e-mail",
            extra={"template": str(template_key)},
        )
