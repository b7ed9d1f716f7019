# discounts/models/discount_set.py

"""
DISCOUNT SET (CAMPAIGN)

A named bundle of discount rules stored as JSON rule blobs.

- Rule blobs are validated on save (same parser the engine loader uses),
  so new rows can never carry malformed rules.
- A sale records WHICH set priced it (SaleRecord.active_discount_set);
  returns re-price with that same set, so a set referenced by a sale is
  protected from deletion at the FK level.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.loader import parse_buy_get_rule, parse_rule

RULE_FIELDS = (
    "default_line_item_value_rule",
    "default_line_item_quantity_rule",
    "default_specific_qty_threshold_rule",
    "default_specific_unit_price_threshold_rule",
    "global_cart_price_rule",
    "global_cart_quantity_rule",
)


def validate_rule_blobs(instance, field_names) -> None:
    errors = {}
    for field_name in field_names:
        try:
            parse_rule(getattr(instance, field_name))
        except ConfigurationError as exc:
            errors[field_name] = str(exc)
    if errors:
        raise ValidationError(errors)


class DiscountSet(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, unique=True)

    is_active = models.BooleanField(default=True)
    is_default = models.BooleanField(default=False)
    is_one_time_per_transaction = models.BooleanField(default=False)

    default_line_item_value_rule = models.JSONField(null=True, blank=True, default=None)
    default_line_item_quantity_rule = models.JSONField(null=True, blank=True, default=None)
    default_specific_qty_threshold_rule = models.JSONField(null=True, blank=True, default=None)
    default_specific_unit_price_threshold_rule = models.JSONField(
        null=True, blank=True, default=None
    )

    global_cart_price_rule = models.JSONField(null=True, blank=True, default=None)
    global_cart_quantity_rule = models.JSONField(null=True, blank=True, default=None)

    # Ordered list of buy/get rule blobs
    buy_get_rules = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="discountset_active_idx"),
        ]

    def clean(self):
        validate_rule_blobs(self, RULE_FIELDS)

        if not isinstance(self.buy_get_rules or [], list):
            raise ValidationError({"buy_get_rules": "buy_get_rules must be a list"})

        for index, blob in enumerate(self.buy_get_rules or []):
            try:
                parse_buy_get_rule(blob)
            except ConfigurationError as exc:
                raise ValidationError({"buy_get_rules": f"Rule #{index + 1}: {exc}"}) from exc

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"{self.name} ({state})"
