"""
Payments app for Stripe reconciliation.

This app handles:
- Payment records (one per order, keyed by the Stripe transaction id)
- Refund records and their lifecycle
- Stripe webhook jobs (checkout, payment and refund queues)

Related apps:
    - orders: Status engine driven by webhook handlers
    - notifications: Mail sent after a webhook job succeeds

Usage:
    from payments.webhooks.ingress import enqueue_stripe_event

    enqueue_stripe_event(event)
"""
