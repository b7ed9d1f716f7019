# discounts/models/product_configuration.py

import uuid

from django.db import models

from .discount_set import DiscountSet, validate_rule_blobs

RULE_FIELDS = (
    "line_item_value_rule",
    "line_item_quantity_rule",
    "specific_qty_threshold_rule",
    "specific_unit_price_threshold_rule",
)


class ProductDiscountConfiguration(models.Model):
    """
    Product-specific rules inside one DiscountSet.

    When active, these four slots REPLACE the set's default item rules for
    the product. When inactive, the product falls back to the defaults.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    discount_set = models.ForeignKey(
        DiscountSet,
        on_delete=models.CASCADE,
        related_name="product_configurations",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="discount_configurations",
    )

    is_active_for_product = models.BooleanField(default=True)

    line_item_value_rule = models.JSONField(null=True, blank=True, default=None)
    line_item_quantity_rule = models.JSONField(null=True, blank=True, default=None)
    specific_qty_threshold_rule = models.JSONField(null=True, blank=True, default=None)
    specific_unit_price_threshold_rule = models.JSONField(null=True, blank=True, default=None)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["discount_set", "product"],
                name="unique_product_config_per_discount_set",
            ),
        ]

    def clean(self):
        validate_rule_blobs(self, RULE_FIELDS)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.discount_set_id} | {self.product_id}"
