"""
Tests for MailService templated delivery.

Uses Django's locmem e-mail backend; sent messages land in mail.outbox.
"""

from unittest.mock import patch

import pytest
from django.core import mail

from notifications.exceptions import MailDeliveryError
from notifications.services import MailService
from notifications.types import MailTemplate


class TestSendTemplatedEmail:
    def test_renders_subject_and_body(self, settings):
        settings.COMPANY_NAME = "Paper Moon Books"
        settings.SUPPORT_EMAIL = "help@papermoon.test"

        MailService.send_templated_email(
            MailTemplate.ORDER_CANCELED,
            "ada@example.com",
            {"order_id": "order-1", "customer_name": "Ada"},
        )

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["ada@example.com"]
        assert message.subject == "Your order order-1 has been canceled"
        assert "Hi Ada," in message.body
        assert "help@papermoon.test" in message.body
        assert "Paper Moon Books" in message.body

    def test_optional_tracking_id(self):
        MailService.send_templated_email(
            MailTemplate.ORDER_SHIPPED,
            "ada@example.com",
            {"order_id": "order-1", "customer_name": "Ada", "tracking_id": "1Z999"},
        )

        assert "Tracking number: 1Z999" in mail.outbox[0].body

    def test_every_template_is_configured(self, settings):
        for template in MailTemplate:
            assert template.value in settings.EMAIL_TEMPLATES

    def test_unknown_template(self):
        with pytest.raises(MailDeliveryError):
            MailService.send_templated_email("newsletter", "ada@example.com", {})

        assert mail.outbox == []

    def test_smtp_failure_wrapped(self):
        with patch(
            "notifications.services.EmailMultiAlternatives.send",
            side_effect=ConnectionRefusedError("smtp down"),
        ):
            with pytest.raises(MailDeliveryError) as exc_info:
                MailService.send_templated_email(
                    MailTemplate.ORDER_DELIVERED,
                    "ada@example.com",
                    {"order_id": "order-1", "customer_name": "Ada"},
                )

        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    def test_subject_missing_field_wrapped(self):
        with pytest.raises(MailDeliveryError):
            MailService.send_templated_email(
                MailTemplate.ORDER_COMPLETE, "ada@example.com", {"customer_name": "Ada"}
            )
