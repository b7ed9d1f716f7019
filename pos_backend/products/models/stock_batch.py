# products/models/stock_batch.py

"""
STOCK BATCH

Represents ONE batch of a product on the shelf.

RULES:
- quantity_remaining is mutated ONLY via services (select_for_update)
- is_active is ALWAYS derived (never user-controlled)
- selling_price is optional; when set it overrides Product.unit_price
- Non-deletable once referenced by StockMovement (audit safety)

Returned goods without a known batch are restocked into a per-product batch
named by settings.POS_RETURNED_STOCK_BATCH.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from .product import Product


class StockBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="stock_batches",
    )

    batch_number = models.CharField(
        max_length=128,
        help_text="Supplier / delivery batch reference",
    )

    selling_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
        help_text="Batch-specific selling price (falls back to Product.unit_price).",
    )

    quantity_remaining = models.PositiveIntegerField(
        default=0,
        help_text="Remaining quantity (service-managed only)",
    )

    # Derived field, NEVER edited directly
    is_active = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "is_active"], name="stockbatch_product_active_idx"),
            models.Index(fields=["created_at"], name="stockbatch_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "batch_number"],
                name="unique_batch_per_product",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__gte=0),
                name="chk_stockbatch_qty_remaining_gte_zero",
            ),
        ]

    def clean(self):
        if not (self.batch_number or "").strip():
            raise ValidationError({"batch_number": "batch_number is required"})

        if self.quantity_remaining is None or self.quantity_remaining < 0:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot be negative"}
            )

        if self.selling_price is not None and self.selling_price < Decimal("0.00"):
            raise ValidationError({"selling_price": "selling_price cannot be negative"})

    def save(self, *args, **kwargs):
        self.is_active = int(self.quantity_remaining or 0) > 0
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        from products.models.stock_movement import StockMovement

        if StockMovement.objects.filter(batch=self).exists():
            raise ValidationError("Cannot delete StockBatch: it has StockMovement audit history.")
        return super().delete(*args, **kwargs)

    @property
    def effective_selling_price(self) -> Decimal:
        if self.selling_price is not None:
            return self.selling_price
        return self.product.unit_price

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | Batch {self.batch_number}"
