# discounts/apps.py

"""
DISCOUNTS APP CONFIG

Discount campaigns (DiscountSet) and the pure discount engine:
- Rule evaluation (item / buy-get / cart)
- Campaign snapshot loading from persisted JSON rule blobs
"""

from django.apps import AppConfig


class DiscountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "discounts"
    verbose_name = "Discount Campaigns"
