"""
User manager for email-keyed accounts.

Accounts are created by the storefront (registered customers) and by
``createsuperuser`` (staff). Guests never get a User row; their identity
lives on the order itself.
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Creates users identified by e-mail address.

    Usage:
        User.objects.create_user("reader@example.com", "s3cret", name="Ada Reader")
    """

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("Users must have an email address")

        user = self.model(email=self.normalize_email(email), **extra_fields)
        if password:
            user.set_password(password)
        else:
            # Accounts created from checkout have no password until reset
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create a staff account with every permission.

        Raises:
            ValueError: If is_staff or is_superuser is explicitly False
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        for flag in ("is_staff", "is_superuser"):
            if extra_fields[flag] is not True:
                raise ValueError(f"Superuser must have {flag}=True.")

        return self._create_user(email, password, **extra_fields)
