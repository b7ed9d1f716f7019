# discounts/engine/orchestrator.py

"""
DISCOUNT CALCULATION ORCHESTRATOR (PURE)

compute(lines, campaign, catalog) -> DiscountComputation

FLOW:
1) Item rules per line (manual override short-circuits)
2) Buy/get offers across lines
3) Final per-line clamp: min(sum, line_value)
4) Global cart rules on the post-item subtotal

GUARANTEES:
- No discount is negative; no line discount exceeds its line value
- Cart discount never exceeds the post-item subtotal
- Same inputs -> same outputs (no I/O, no clock, no mutation of inputs)
- Audit order: item records (cart order), buy/get records, cart records
"""

from typing import Iterable, Mapping

from discounts.engine.buy_get import apply_buy_get_rules
from discounts.engine.cart_resolver import apply_cart_rules
from discounts.engine.item_resolver import resolve_line
from discounts.engine.types import (
    ZERO,
    CatalogEntry,
    DiscountCampaign,
    DiscountComputation,
    SaleLine,
)


def _ensure_unique_lines(lines: tuple[SaleLine, ...]) -> None:
    seen = set()
    for line in lines:
        if line.line_id in seen:
            raise ValueError(f"Duplicate sale line: {line.line_id}")
        seen.add(line.line_id)


def compute(
    lines: Iterable[SaleLine],
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
) -> DiscountComputation:
    lines = tuple(lines)
    _ensure_unique_lines(lines)

    if not lines:
        return DiscountComputation.empty()

    active = campaign if campaign is not None and campaign.is_active else None

    resolutions = tuple(
        resolve_line(line, campaign=active, catalog=catalog) for line in lines
    )
    item_records = tuple(rec for r in resolutions for rec in r.records)

    if active is None:
        discounts = {
            r.line.line_id: r.discount for r in resolutions if r.discount is not None
        }
        bogo_records = ()
    else:
        discounts, bogo_records = apply_buy_get_rules(
            resolutions, campaign=active, catalog=catalog
        )

    clamped = {}
    for line in lines:
        entry = discounts.get(line.line_id)
        if entry is None:
            continue
        clamped[line.line_id] = entry.capped_at(line.line_value, quantity=line.quantity)

    item_total = sum((d.total_for_line for d in clamped.values()), ZERO)

    if active is None:
        cart_total, cart_records = ZERO, ()
    else:
        cart_total, cart_records = apply_cart_rules(lines, clamped, campaign=active)

    return DiscountComputation(
        item_discounts=clamped,
        item_discount_total=item_total,
        cart_discount_total=cart_total,
        cart_rules_applied=cart_records,
        audit_log=item_records + bogo_records + cart_records,
    )
