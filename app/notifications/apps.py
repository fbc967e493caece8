from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """Mail queues and templated e-mail delivery."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Mail"
