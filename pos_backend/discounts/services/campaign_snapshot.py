# discounts/services/campaign_snapshot.py

"""
CAMPAIGN SNAPSHOT LOADER

Turns a persisted DiscountSet (+ its product configurations) into the
immutable DiscountCampaign the engine consumes.

- Read-only; never writes
- Rule blobs go through discounts/engine/loader.py, so a legacy row with a
  malformed rule loses only that rule (logged), never the whole campaign
"""

from __future__ import annotations

import logging

from discounts.engine.loader import load_campaign_from_dict
from discounts.engine.types import DiscountCampaign
from discounts.models import DiscountSet

logger = logging.getLogger(__name__)


def campaign_as_dict(discount_set: DiscountSet) -> dict:
    configurations = [
        {
            "product_id": str(pc.product_id),
            "is_active_for_product": pc.is_active_for_product,
            "line_item_value_rule": pc.line_item_value_rule,
            "line_item_quantity_rule": pc.line_item_quantity_rule,
            "specific_qty_threshold_rule": pc.specific_qty_threshold_rule,
            "specific_unit_price_threshold_rule": pc.specific_unit_price_threshold_rule,
        }
        for pc in discount_set.product_configurations.all()
    ]

    return {
        "id": str(discount_set.id),
        "name": discount_set.name,
        "is_active": discount_set.is_active,
        "one_time_per_transaction": discount_set.is_one_time_per_transaction,
        "default_line_item_value_rule": discount_set.default_line_item_value_rule,
        "default_line_item_quantity_rule": discount_set.default_line_item_quantity_rule,
        "default_specific_qty_threshold_rule": discount_set.default_specific_qty_threshold_rule,
        "default_specific_unit_price_threshold_rule": (
            discount_set.default_specific_unit_price_threshold_rule
        ),
        "global_cart_price_rule": discount_set.global_cart_price_rule,
        "global_cart_quantity_rule": discount_set.global_cart_quantity_rule,
        "buy_get_rules": discount_set.buy_get_rules or [],
        "product_configurations": configurations,
    }


def load_campaign(discount_set: DiscountSet | None) -> DiscountCampaign | None:
    if discount_set is None:
        return None
    return load_campaign_from_dict(campaign_as_dict(discount_set))


def load_campaign_by_id(discount_set_id) -> DiscountCampaign | None:
    """
    Resolve a campaign snapshot by id.

    A missing set yields None (bill priced with manual overrides only).
    """
    if not discount_set_id:
        return None

    discount_set = (
        DiscountSet.objects.prefetch_related("product_configurations")
        .filter(id=discount_set_id)
        .first()
    )
    if discount_set is None:
        logger.warning(
            "Discount set not found; pricing without campaign",
            extra={"discount_set_id": str(discount_set_id)},
        )
        return None

    return load_campaign(discount_set)
