# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings and Celery configuration. The Celery app is imported here so that
# shared_task decorators bind to it when Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
