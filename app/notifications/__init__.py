"""
Notifications application.

Queues and delivers templated e-mails for order and account events.

Modules:
    - queue: QueueService (producer side)
    - tasks: send_order_mail / send_auth_mail Celery tasks (consumer side)
    - services: MailService (rendering + SMTP)
    - types: MailTemplate keys and payload requirements
"""
