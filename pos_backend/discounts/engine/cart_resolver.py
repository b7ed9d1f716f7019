# discounts/engine/cart_resolver.py

"""
CART DISCOUNT RESOLVER (PURE)

Global cart rules run AFTER item + buy/get discounts, on:
- subtotal_after_item_discounts = sum(line_value - line_discount)
- total_quantity = sum(quantity)

Both rules may apply. Each one is clamped to what is left of the subtotal,
so the cart total never exceeds the subtotal.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from discounts.engine.rule_evaluator import clamp, condition_met
from discounts.engine.types import (
    HUNDRED,
    ZERO,
    AppliedRuleRecord,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    LineDiscount,
    RuleType,
    SaleLine,
)


def subtotal_after_item_discounts(
    lines: Iterable[SaleLine],
    item_discounts: Mapping[str, LineDiscount],
) -> Decimal:
    total = ZERO
    for line in lines:
        entry = item_discounts.get(line.line_id)
        total += line.line_value - (entry.total_for_line if entry else ZERO)
    return total


def _cart_amount(rule: DiscountRuleConfig, subtotal: Decimal) -> Decimal:
    if rule.kind == DiscountKind.FIXED:
        return rule.value
    return subtotal * (rule.value / HUNDRED)


def apply_cart_rules(
    lines: tuple[SaleLine, ...],
    item_discounts: Mapping[str, LineDiscount],
    *,
    campaign: DiscountCampaign,
) -> tuple[Decimal, tuple[AppliedRuleRecord, ...]]:
    subtotal = subtotal_after_item_discounts(lines, item_discounts)
    total_quantity = sum(line.quantity for line in lines)

    candidates = (
        (campaign.global_cart_price_rule, RuleType.GLOBAL_CART_PRICE, subtotal),
        (
            campaign.global_cart_quantity_rule,
            RuleType.GLOBAL_CART_QUANTITY,
            Decimal(total_quantity),
        ),
    )

    cart_total = ZERO
    records = []
    for rule, rule_type, scalar in candidates:
        if rule is None or not rule.enabled:
            continue
        if not condition_met(rule, scalar):
            continue

        amount = clamp(_cart_amount(rule, subtotal), upper=subtotal)
        amount = min(amount, subtotal - cart_total)
        if amount <= ZERO:
            continue

        cart_total += amount
        records.append(
            AppliedRuleRecord(
                campaign_name=campaign.name,
                rule_name=rule.name,
                rule_type=rule_type,
                amount=amount,
                applied_once=True,
            )
        )

    return cart_total, tuple(records)
