from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Registered users and the account mails sent to them."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
    verbose_name = "Accounts"
