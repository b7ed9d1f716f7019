"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: CREATE SaleRecord, PaymentInstallment

- SaleRecord holds both the pristine bill and its (single) adjustment row
- bill_number is unique among pristine rows only
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("discounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SaleRecord",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                (
                    "bill_number",
                    models.CharField(
                        db_index=True,
                        help_text="Receipt number; shared by the pristine row and its adjustment",
                        max_length=64,
                    ),
                ),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("COMPLETED_ORIGINAL", "Completed (original)"),
                            ("ADJUSTED_ACTIVE", "Adjusted (active returns)"),
                        ],
                        default="COMPLETED_ORIGINAL",
                        max_length=32,
                    ),
                ),
                ("items", models.JSONField(blank=True, default=list)),
                (
                    "subtotal_original",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "total_item_discount_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "total_cart_discount_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "net_subtotal",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Bill tax rate as a fraction (0.0500 == 5%).",
                        max_digits=6,
                    ),
                ),
                (
                    "tax_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "total_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("applied_discount_summary", models.JSONField(blank=True, default=list)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("card", "Card"), ("credit", "Credit")],
                        default="cash",
                        max_length=32,
                    ),
                ),
                (
                    "amount_paid_by_customer",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "change_due",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("is_credit_sale", models.BooleanField(default=False)),
                (
                    "credit_outstanding_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        default=None,
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "credit_payment_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("PENDING", "Pending"),
                            ("PARTIALLY_PAID", "Partially paid"),
                            ("FULLY_PAID", "Fully paid"),
                        ],
                        default=None,
                        max_length=20,
                        null=True,
                    ),
                ),
                ("credit_last_payment_date", models.DateTimeField(blank=True, null=True)),
                ("returned_items_log", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "active_discount_set",
                    models.ForeignKey(
                        blank=True,
                        help_text="Campaign that priced the sale; returns re-price with it",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_records",
                        to="discounts.discountset",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Cashier / staff who processed the sale",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sale_records",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "original_sale_record",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="adjustment",
                        to="sales.salerecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-date"],
                "indexes": [
                    models.Index(fields=["status"], name="salerecord_status_idx"),
                    models.Index(fields=["date"], name="salerecord_date_idx"),
                    models.Index(
                        fields=["is_credit_sale", "credit_payment_status"],
                        name="salerecord_credit_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(original_sale_record__isnull=True),
                        fields=("bill_number",),
                        name="unique_pristine_bill_number",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentInstallment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("amount_paid", models.DecimalField(decimal_places=2, max_digits=12)),
                ("method", models.CharField(max_length=32)),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("paid_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "recorded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recorded_installments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale_record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_installments",
                        to="sales.salerecord",
                    ),
                ),
            ],
            options={
                "ordering": ["paid_at"],
                "indexes": [
                    models.Index(
                        fields=["sale_record", "paid_at"],
                        name="installment_sale_paid_idx",
                    ),
                ],
            },
        ),
    ]
