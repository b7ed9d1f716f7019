"""
======================================================
PATH: discounts/migrations/0001_initial.py
======================================================
MIGRATION: CREATE DiscountSet, ProductDiscountConfiguration
"""

from __future__ import annotations

import uuid

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DiscountSet",
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
                ("name", models.CharField(max_length=255, unique=True)),
                ("is_active", models.BooleanField(default=True)),
                ("is_default", models.BooleanField(default=False)),
                ("is_one_time_per_transaction", models.BooleanField(default=False)),
                (
                    "default_line_item_value_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "default_line_item_quantity_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "default_specific_qty_threshold_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "default_specific_unit_price_threshold_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "global_cart_price_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "global_cart_quantity_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                ("buy_get_rules", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["is_active"], name="discountset_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductDiscountConfiguration",
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
                ("is_active_for_product", models.BooleanField(default=True)),
                (
                    "line_item_value_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "line_item_quantity_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "specific_qty_threshold_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "specific_unit_price_threshold_rule",
                    models.JSONField(blank=True, default=None, null=True),
                ),
                (
                    "discount_set",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_configurations",
                        to="discounts.discountset",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="discount_configurations",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("discount_set", "product"),
                        name="unique_product_config_per_discount_set",
                    ),
                ],
            },
        ),
    ]
