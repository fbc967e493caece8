# Generated manually - Initial payment record and refund models

import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="OrderPayment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "transaction_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="unpaid",
                        help_text="Current payment status",
                        max_length=20,
                    ),
                ),
                (
                    "amount",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Amount in smallest currency unit (e.g., cents)",
                    ),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[("card", "Card")],
                        default="card",
                        help_text="Payment method",
                        max_length=20,
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        help_text="Order this payment belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Order Payment",
                "verbose_name_plural": "Order Payments",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "refund_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Refund ID (re_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "amount",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Refund amount in smallest currency unit (e.g., cents)",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("created", "Created"),
                            ("complete", "Complete"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="created",
                        help_text="Current state of the refund (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Stripe failure reason if the refund failed",
                        null=True,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        help_text="Order being refunded",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["-created_at"],
            },
        ),
    ]
