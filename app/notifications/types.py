"""
Mail template keys and job payload requirements.

Template keys are the camelCase identifiers carried in queued mail jobs;
subjects and template files for each key live in settings.EMAIL_TEMPLATES.
"""

from django.db import models


class MailTemplate(models.TextChoices):
    """Templated e-mails the platform sends."""

    AUTH_PASSWORD_RESET = "authPasswordReset", "Password reset"
    ORDER_COMPLETE = "orderComplete", "Order complete"
    ORDER_EXPIRED = "orderExpired", "Order expired"
    ORDER_CANCELED = "orderCanceled", "Order canceled"
    ORDER_SHIPPED = "orderShipped", "Order shipped"
    ORDER_DELIVERED = "orderDelivered", "Order delivered"
    REFUND_CREATED = "refundCreated", "Refund created"
    REFUND_COMPLETE = "refundComplete", "Refund complete"
    REFUND_FAILED = "refundFailed", "Refund failed"


ORDER_MAIL_FIELDS = ("email", "orderId", "username")
REFUND_MAIL_FIELDS = ORDER_MAIL_FIELDS + ("refundId",)
AUTH_MAIL_FIELDS = ("email", "username", "passwordResetLink")

REFUND_TEMPLATES = frozenset(
    {
        MailTemplate.REFUND_CREATED,
        MailTemplate.REFUND_COMPLETE,
        MailTemplate.REFUND_FAILED,
    }
)


def required_fields(template_key: str) -> tuple[str, ...]:
    """Fields a mail job for ``template_key`` must carry."""
    if template_key == MailTemplate.AUTH_PASSWORD_RESET:
        return AUTH_MAIL_FIELDS
    if template_key in REFUND_TEMPLATES:
        return REFUND_MAIL_FIELDS
    return ORDER_MAIL_FIELDS
