"""
======================================================
PATH: products/migrations/0002_stockmovement_sale_record.py
======================================================
MIGRATION: LINK StockMovement -> SaleRecord

Purpose:
- Sale / return / return-undo movements reference the bill that caused them.
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("products", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="stockmovement",
            name="sale_record",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="stock_movements",
                to="sales.salerecord",
            ),
        ),
        migrations.AddIndex(
            model_name="stockmovement",
            index=models.Index(
                fields=["sale_record", "created_at"],
                name="stockmove_sale_created_idx",
            ),
        ),
    ]
