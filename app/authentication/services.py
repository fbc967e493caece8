"""
Authentication services.

Only the account flows that feed the mail queue live here; sign-up,
login and sessions are handled outside this backend.

Related files:
    - models.py: User
    - notifications/queue.py: auth-mail producer

Security:
    - Reset tokens come from Django's PasswordResetTokenGenerator
      (invalidated by a password change or login)
    - Unknown addresses are never revealed to the caller
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth.tokens import default_token_generator
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from notifications.queue import QueueService
from notifications.types import MailTemplate

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class AuthService:
    """
    Account operations that notify the user by e-mail.

    Usage:
        from authentication.services import AuthService

        AuthService.request_password_reset("reader@example.com")
    """

    @staticmethod
    def build_password_reset_link(user: User) -> str:
        """Storefront URL carrying the user id and a one-time reset token."""
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        return f"{settings.FRONTEND_URL}/reset-password/{uid}/{token}"

    @staticmethod
    def request_password_reset(email: str) -> bool:
        """
        Queue a password reset e-mail.

        Args:
            email: User's email address

        Returns:
            True whether or not the address belongs to an active user

        Raises:
            QueueError: If the mail job could not be queued
        """
        from authentication.models import User

        try:
            user = User.objects.get(email__iexact=email.strip(), is_active=True)
        except User.DoesNotExist:
            logger.debug(f"Password reset requested for unknown email: {email}")
            return True

        QueueService.add_auth_mail_job(
            MailTemplate.AUTH_PASSWORD_RESET,
            {
                "email": user.email,
                "username": user.get_full_name(),
                "passwordResetLink": AuthService.build_password_reset_link(user),
            },
        )

        logger.info(
            f"Password reset requested for user: {user.email}",
            extra={"user_id": str(user.pk)},
        )
        return True
