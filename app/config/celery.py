"""
Celery configuration for the bookstore backend.

Workers consume five queues (see CELERY_TASK_ROUTES in settings):
- stripe-checkout, stripe-payment, stripe-refund: Stripe webhook jobs
- order-mail, auth-mail: Templated e-mail delivery

Tasks are auto-discovered from the ``tasks`` module of every installed app.

Usage:
    celery -A config worker -Q stripe-checkout,stripe-payment,stripe-refund
    celery -A config worker -Q order-mail,auth-mail
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
