# discounts/engine/loader.py

"""
RULE CONFIG LOADER

The ONLY place raw JSON rule blobs become typed engine values.

Accepts both shapes:
- camelCase as persisted by campaigns
  (isEnabled, name, type, value, conditionMin, conditionMax, applyFixedOnce)
- snake_case
  (enabled, name, kind, value, condition_min, condition_max, apply_once)

POLICY:
- None / empty blob -> no rule
- Malformed rule -> ConfigurationError logged at WARNING, rule skipped
- A bad rule never aborts loading the rest of the campaign
"""

import logging
from typing import Any, Iterable, Mapping

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.types import (
    BuyGetRule,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    ProductDiscountConfiguration,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _pick(data: Mapping[str, Any], *keys: str, default=_MISSING):
    for key in keys:
        if key in data:
            return data[key]
    if default is _MISSING:
        raise ConfigurationError(f"Missing required field: {keys[0]}")
    return default


def _parse_kind(raw) -> DiscountKind:
    try:
        return DiscountKind(str(raw).lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unknown discount type: {raw!r}") from exc


def _parse_positive_int(raw, *, field_name: str) -> int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"{field_name} must be a whole number")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{field_name} must be a whole number") from exc
    if value != raw and str(value) != str(raw).strip():
        raise ConfigurationError(f"{field_name} must be a whole number")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero")
    return value


# ============================================================
# STRICT PARSERS (RAISE)
# ============================================================


def parse_rule(blob: Mapping[str, Any] | None) -> DiscountRuleConfig | None:
    if not blob:
        return None
    if not isinstance(blob, Mapping):
        raise ConfigurationError("Rule config must be an object")

    return DiscountRuleConfig(
        name=str(_pick(blob, "name", default="") or "").strip() or "Unnamed rule",
        kind=_parse_kind(_pick(blob, "type", "kind")),
        value=_pick(blob, "value"),
        condition_min=_pick(blob, "conditionMin", "condition_min", default=None),
        condition_max=_pick(blob, "conditionMax", "condition_max", default=None),
        apply_once=bool(_pick(blob, "applyFixedOnce", "apply_once", default=False)),
        enabled=bool(_pick(blob, "isEnabled", "enabled", default=False)),
    )


def parse_buy_get_rule(blob: Mapping[str, Any]) -> BuyGetRule:
    if not isinstance(blob, Mapping):
        raise ConfigurationError("Buy/get rule must be an object")

    return BuyGetRule(
        buy_product_id=str(_pick(blob, "buyProductId", "buy_product_id")),
        buy_quantity=_parse_positive_int(
            _pick(blob, "buyQuantity", "buy_quantity"), field_name="buy_quantity"
        ),
        get_product_id=str(_pick(blob, "getProductId", "get_product_id")),
        get_quantity=_parse_positive_int(
            _pick(blob, "getQuantity", "get_quantity"), field_name="get_quantity"
        ),
        discount_kind=_parse_kind(_pick(blob, "discountType", "discount_kind")),
        discount_value=_pick(blob, "discountValue", "discount_value"),
        repeatable=bool(_pick(blob, "isRepeatable", "repeatable", default=False)),
    )


# ============================================================
# LENIENT LOADERS (LOG + SKIP)
# ============================================================


def load_rule(
    blob: Mapping[str, Any] | None,
    *,
    label: str,
    campaign_id: str | None = None,
) -> DiscountRuleConfig | None:
    try:
        return parse_rule(blob)
    except ConfigurationError as exc:
        logger.warning(
            "Skipping malformed discount rule",
            extra={"rule_slot": label, "campaign_id": campaign_id, "error": str(exc)},
        )
        return None


def load_buy_get_rules(
    blobs: Iterable[Mapping[str, Any]] | None,
    *,
    campaign_id: str | None = None,
) -> tuple[BuyGetRule, ...]:
    rules = []
    for index, blob in enumerate(blobs or ()):
        try:
            rules.append(parse_buy_get_rule(blob))
        except ConfigurationError as exc:
            logger.warning(
                "Skipping malformed buy/get rule",
                extra={"rule_index": index, "campaign_id": campaign_id, "error": str(exc)},
            )
    return tuple(rules)


def load_product_configuration(
    data: Mapping[str, Any],
    *,
    campaign_id: str | None = None,
) -> ProductDiscountConfiguration:
    product_id = str(_pick(data, "productId", "product_id"))
    label = f"product:{product_id}"

    return ProductDiscountConfiguration(
        product_id=product_id,
        is_active=bool(
            _pick(
                data,
                "isActiveForProductInCampaign",
                "is_active_for_product",
                "is_active",
                default=True,
            )
        ),
        value_rule=load_rule(
            _pick(data, "lineItemValueRuleJson", "line_item_value_rule", default=None),
            label=f"{label}:line_item_value",
            campaign_id=campaign_id,
        ),
        quantity_rule=load_rule(
            _pick(data, "lineItemQuantityRuleJson", "line_item_quantity_rule", default=None),
            label=f"{label}:line_item_quantity",
            campaign_id=campaign_id,
        ),
        specific_quantity_rule=load_rule(
            _pick(
                data,
                "specificQtyThresholdRuleJson",
                "specific_qty_threshold_rule",
                default=None,
            ),
            label=f"{label}:specific_qty_threshold",
            campaign_id=campaign_id,
        ),
        specific_unit_price_rule=load_rule(
            _pick(
                data,
                "specificUnitPriceThresholdRuleJson",
                "specific_unit_price_threshold_rule",
                default=None,
            ),
            label=f"{label}:specific_unit_price",
            campaign_id=campaign_id,
        ),
    )


def load_campaign_from_dict(data: Mapping[str, Any]) -> DiscountCampaign:
    """
    Build a campaign snapshot from a plain dict (either key style).

    Only the campaign identity is required; every rule is optional and
    malformed rules are dropped individually.
    """
    campaign_id = str(_pick(data, "id"))

    def rule(*keys: str) -> DiscountRuleConfig | None:
        return load_rule(
            _pick(data, *keys, default=None),
            label=keys[-1],
            campaign_id=campaign_id,
        )

    configurations = {}
    for raw in _pick(data, "productConfigurations", "product_configurations", default=()) or ():
        try:
            config = load_product_configuration(raw, campaign_id=campaign_id)
        except ConfigurationError as exc:
            logger.warning(
                "Skipping malformed product configuration",
                extra={"campaign_id": campaign_id, "error": str(exc)},
            )
            continue
        configurations[config.product_id] = config

    return DiscountCampaign(
        id=campaign_id,
        name=str(_pick(data, "name", default="")),
        is_active=bool(_pick(data, "isActive", "is_active", default=True)),
        default_value_rule=rule("defaultLineItemValueRuleJson", "default_line_item_value_rule"),
        default_quantity_rule=rule(
            "defaultLineItemQuantityRuleJson", "default_line_item_quantity_rule"
        ),
        default_specific_quantity_rule=rule(
            "defaultSpecificQtyThresholdRuleJson", "default_specific_qty_threshold_rule"
        ),
        default_specific_unit_price_rule=rule(
            "defaultSpecificUnitPriceThresholdRuleJson",
            "default_specific_unit_price_threshold_rule",
        ),
        global_cart_price_rule=rule("globalCartPriceRuleJson", "global_cart_price_rule"),
        global_cart_quantity_rule=rule(
            "globalCartQuantityRuleJson", "global_cart_quantity_rule"
        ),
        buy_get_rules=load_buy_get_rules(
            _pick(data, "buyGetRulesJson", "buy_get_rules", default=None),
            campaign_id=campaign_id,
        ),
        product_configurations=configurations,
        one_time_per_transaction=bool(
            _pick(data, "isOneTimePerTransaction", "one_time_per_transaction", default=False)
        ),
    )
