# discounts/engine/buy_get.py

"""
BUY-X-GET-Y OFFER RESOLVER (PURE)

Cross-line offers: buying enough of one product discounts units of another.

Rules:
- The quantity ledger is built once from the whole cart (summed across batch
  lines) and is only READ. Every rule sees full cart quantities, so two rules
  sharing a buy product can both fire.
- Lines carrying a manual override are never touched.
- Discountable units are spread over the get product's lines in cart order.
- A get line only takes what its item rules left of its value.
"""

import logging
from collections import Counter
from decimal import Decimal
from typing import Iterable, Mapping

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.item_resolver import ItemResolution
from discounts.engine.rule_evaluator import clamp
from discounts.engine.types import (
    HUNDRED,
    ZERO,
    AppliedRuleRecord,
    BuyGetRule,
    CatalogEntry,
    DiscountCampaign,
    DiscountKind,
    LineDiscount,
    RuleType,
    SaleLine,
)

logger = logging.getLogger(__name__)


def build_quantity_ledger(lines: Iterable[SaleLine]) -> Mapping[str, int]:
    ledger = Counter()
    for line in lines:
        ledger[line.product_id] += line.quantity
    return dict(ledger)


def discount_per_unit(rule: BuyGetRule, *, unit_price: Decimal) -> Decimal:
    if rule.discount_kind == DiscountKind.PERCENTAGE:
        return clamp(unit_price * (rule.discount_value / HUNDRED), upper=unit_price)
    return clamp(rule.discount_value, upper=unit_price)


def audit_rule_name(rule: BuyGetRule, catalog: Mapping[str, CatalogEntry]) -> str:
    buy_name = catalog[rule.buy_product_id].name
    get_name = catalog[rule.get_product_id].name
    return (
        f"Buy {rule.buy_quantity} of {buy_name} "
        f"Get {rule.get_quantity} of {get_name}"
    )


def _times_applicable(rule: BuyGetRule, buy_qty: int) -> int:
    if rule.repeatable:
        return buy_qty // rule.buy_quantity
    return 1


def apply_buy_get_rules(
    resolutions: tuple[ItemResolution, ...],
    *,
    campaign: DiscountCampaign,
    catalog: Mapping[str, CatalogEntry],
) -> tuple[dict[str, LineDiscount], tuple[AppliedRuleRecord, ...]]:
    """
    Returns (line discounts merged with BOGO amounts, BOGO audit records).

    The incoming ItemResolution values are not modified.
    """
    discounts = {
        r.line.line_id: r.discount for r in resolutions if r.discount is not None
    }
    if not campaign.buy_get_rules:
        return discounts, ()

    ledger = build_quantity_ledger(r.line for r in resolutions)
    records = []

    for rule in campaign.buy_get_rules:
        buy_qty = ledger.get(rule.buy_product_id, 0)
        if buy_qty < rule.buy_quantity:
            continue

        missing = [
            pid
            for pid in (rule.buy_product_id, rule.get_product_id)
            if pid not in catalog
        ]
        if missing:
            exc = ConfigurationError(
                f"Buy/get rule references unknown product(s): {', '.join(missing)}"
            )
            logger.warning(
                str(exc),
                extra={"campaign_id": campaign.id, "missing_products": missing},
            )
            continue

        get_lines = [
            r.line
            for r in resolutions
            if r.line.product_id == rule.get_product_id and not r.is_overridden
        ]
        get_qty = sum(line.quantity for line in get_lines)
        if get_qty <= 0:
            continue

        remaining = min(get_qty, _times_applicable(rule, buy_qty) * rule.get_quantity)
        rule_total = ZERO

        for line in get_lines:
            if remaining <= 0:
                break
            units = min(remaining, line.quantity)
            remaining -= units

            existing = discounts.get(line.line_id)
            room = line.line_value - (existing.total_for_line if existing is not None else ZERO)

            amount = discount_per_unit(rule, unit_price=line.unit_price) * Decimal(units)
            amount = min(amount, room)
            if amount <= ZERO:
                continue
            rule_total += amount

            if existing is None:
                discounts[line.line_id] = LineDiscount(
                    line_id=line.line_id,
                    product_id=line.product_id,
                    rule_name=rule.short_name,
                    campaign_name=campaign.name,
                    total_for_line=amount,
                    per_unit_equivalent=amount / Decimal(line.quantity),
                    rule_type=RuleType.BUY_GET,
                    applied_once=not rule.repeatable,
                )
            else:
                discounts[line.line_id] = existing.merged_with(
                    amount=amount,
                    rule_name=rule.short_name,
                    quantity=line.quantity,
                )

        if rule_total > ZERO:
            records.append(
                AppliedRuleRecord(
                    campaign_name=campaign.name,
                    rule_name=audit_rule_name(rule, catalog),
                    rule_type=RuleType.BUY_GET,
                    amount=rule_total,
                    affected_product_id=rule.get_product_id,
                    applied_once=not rule.repeatable,
                )
            )

    return discounts, tuple(records)
