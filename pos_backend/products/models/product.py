# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """
    Represents a sellable product.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in StockBatch
    - Total stock = sum of ACTIVE batches

    PRICING:
    - unit_price is the default selling price
    - A batch may carry its own selling_price (wins when set)
    - tax_rate is an optional per-product override (fraction, 0.05 == 5%);
      NULL means "use the rate captured on the bill"
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    tax_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        null=True,
        blank=True,
        default=None,
        help_text="Product-specific tax rate as a fraction (0.0500 == 5%).",
    )

    # Services are sold without stock batches
    is_service = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError("Unit price cannot be negative")

        if self.tax_rate is not None:
            rate = Decimal(self.tax_rate)
            if rate < Decimal("0") or rate > Decimal("1"):
                raise ValidationError({"tax_rate": "tax_rate must be between 0 and 1"})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def total_stock_db(self) -> int:
        return (
            self.stock_batches.filter(is_active=True)
            .aggregate(total=Sum("quantity_remaining"))
            .get("total")
            or 0
        )
