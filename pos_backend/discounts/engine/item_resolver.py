# discounts/engine/item_resolver.py

"""
ITEM DISCOUNT RESOLVER (PURE)

Per line precedence:
1) Manual override -> evaluated alone, short-circuits everything else
2) Active product configuration in the campaign -> its four rule slots
3) Campaign defaults -> the four default slots

Slots stack additively in a fixed order (value, quantity, specific quantity,
specific unit price). Each slot is clamped to what is left of the line value,
so the audit records of a line always add up to its discount.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.rule_evaluator import evaluate_override, evaluate_rule
from discounts.engine.types import (
    MANUAL_OVERRIDE_CAMPAIGN,
    ZERO,
    AppliedRuleRecord,
    CatalogEntry,
    DiscountCampaign,
    LineDiscount,
    RuleSlot,
    RuleType,
    SaleLine,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemResolution:
    line: SaleLine
    discount: LineDiscount | None
    records: tuple[AppliedRuleRecord, ...]

    @property
    def is_overridden(self) -> bool:
        return self.line.manual_override is not None


def select_rule_slots(
    product_id: str,
    campaign: DiscountCampaign,
) -> tuple[RuleSlot, ...]:
    config = campaign.product_configurations.get(product_id)
    if config is not None and config.is_active:
        return config.rule_slots()
    return campaign.default_rule_slots()


def _per_unit(total: Decimal, quantity: int) -> Decimal:
    return total / Decimal(quantity) if quantity > 0 else ZERO


def _resolve_override(line: SaleLine) -> ItemResolution:
    override = line.manual_override
    amount = evaluate_override(
        override,
        unit_price=line.unit_price,
        quantity=line.quantity,
        line_value=line.line_value,
    )
    if amount <= ZERO:
        return ItemResolution(line=line, discount=None, records=())

    rule_name = override.as_rule().name
    discount = LineDiscount(
        line_id=line.line_id,
        product_id=line.product_id,
        rule_name=rule_name,
        campaign_name=MANUAL_OVERRIDE_CAMPAIGN,
        total_for_line=amount,
        per_unit_equivalent=_per_unit(amount, line.quantity),
        rule_type=RuleType.MANUAL_OVERRIDE,
        applied_once=override.apply_once,
    )
    record = AppliedRuleRecord(
        campaign_name=MANUAL_OVERRIDE_CAMPAIGN,
        rule_name=rule_name,
        rule_type=RuleType.MANUAL_OVERRIDE,
        amount=amount,
        affected_product_id=line.product_id,
        applied_once=override.apply_once,
    )
    return ItemResolution(line=line, discount=discount, records=(record,))


def resolve_line(
    line: SaleLine,
    *,
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
) -> ItemResolution:
    if line.manual_override is not None:
        return _resolve_override(line)

    if campaign is None or not campaign.is_active:
        return ItemResolution(line=line, discount=None, records=())

    if line.product_id not in catalog:
        exc = ConfigurationError(
            f"Product {line.product_id} is not in the catalog; campaign rules skipped"
        )
        logger.warning(
            str(exc),
            extra={"product_id": line.product_id, "campaign_id": campaign.id},
        )
        return ItemResolution(line=line, discount=None, records=())

    records = []
    room = line.line_value
    for slot in select_rule_slots(line.product_id, campaign):
        amount = evaluate_rule(
            slot.config,
            unit_price=line.unit_price,
            quantity=line.quantity,
            line_value=line.line_value,
            context=slot.context,
        )
        # a later slot only gets what earlier slots left of the line
        amount = min(amount, room)
        if amount <= ZERO:
            continue
        room -= amount
        records.append(
            AppliedRuleRecord(
                campaign_name=campaign.name,
                rule_name=slot.config.name,
                rule_type=slot.rule_type,
                amount=amount,
                affected_product_id=line.product_id,
                applied_once=slot.config.apply_once,
            )
        )

    if not records:
        return ItemResolution(line=line, discount=None, records=())

    total = sum((r.amount for r in records), ZERO)
    discount = LineDiscount(
        line_id=line.line_id,
        product_id=line.product_id,
        rule_name=", ".join(r.rule_name for r in records),
        campaign_name=campaign.name,
        total_for_line=total,
        per_unit_equivalent=_per_unit(total, line.quantity),
        rule_type=records[0].rule_type,
        applied_once=len(records) == 1 and records[0].applied_once,
    )
    return ItemResolution(line=line, discount=discount, records=tuple(records))
