"""
Stripe webhook processing.

Verified events are queued by ``ingress.enqueue_stripe_event`` and
processed by the Celery tasks in payments.tasks, which hand them to the
per-family WebhookJobProcessor (``processor``) and its handlers
(``handlers``).
"""
