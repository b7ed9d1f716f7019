# discounts/engine/rule_evaluator.py

"""
RULE EVALUATOR (PURE)

Evaluates ONE rule config against ONE line.

GUARANTEES:
- Missing / disabled rule -> 0
- Condition not met -> 0
- Result is always clamped to [0, line_value]
- No I/O, no mutation, no rounding (exact Decimal)
"""

from decimal import Decimal

from discounts.engine.types import (
    HUNDRED,
    ZERO,
    DiscountKind,
    DiscountRuleConfig,
    ManualOverride,
    RuleContext,
)


def clamp(amount: Decimal, *, upper: Decimal) -> Decimal:
    if upper <= ZERO:
        return ZERO
    return max(ZERO, min(amount, upper))


def _condition_scalar(
    context: RuleContext,
    *,
    unit_price: Decimal,
    quantity: int,
    line_value: Decimal,
) -> Decimal:
    if context == RuleContext.LINE_VALUE:
        return line_value
    if context == RuleContext.SPECIFIC_UNIT_PRICE:
        return unit_price
    # ByQuantity and BySpecificQuantity both test the line quantity
    return Decimal(quantity)


def condition_met(rule: DiscountRuleConfig, scalar: Decimal) -> bool:
    if rule.condition_min is not None and scalar < rule.condition_min:
        return False
    if rule.condition_max is not None and scalar > rule.condition_max:
        return False
    return True


def _raw_amount(
    *,
    kind: DiscountKind,
    value: Decimal,
    apply_once: bool,
    unit_price: Decimal,
    quantity: int,
    line_value: Decimal,
    context: RuleContext,
) -> Decimal:
    if kind == DiscountKind.FIXED:
        if apply_once:
            return value
        return value * Decimal(quantity)

    percent = value / HUNDRED
    if apply_once or context == RuleContext.LINE_VALUE:
        return percent * line_value
    return percent * unit_price * Decimal(quantity)


def evaluate_rule(
    rule: DiscountRuleConfig | None,
    *,
    unit_price: Decimal,
    quantity: int,
    line_value: Decimal,
    context: RuleContext,
) -> Decimal:
    if rule is None or not rule.enabled:
        return ZERO

    scalar = _condition_scalar(
        context,
        unit_price=unit_price,
        quantity=quantity,
        line_value=line_value,
    )
    if not condition_met(rule, scalar):
        return ZERO

    amount = _raw_amount(
        kind=rule.kind,
        value=rule.value,
        apply_once=rule.apply_once,
        unit_price=unit_price,
        quantity=quantity,
        line_value=line_value,
        context=context,
    )
    return clamp(amount, upper=line_value)


def evaluate_override(
    override: ManualOverride,
    *,
    unit_price: Decimal,
    quantity: int,
    line_value: Decimal,
) -> Decimal:
    """Manual overrides have no condition; same Fixed/Percentage math."""
    amount = _raw_amount(
        kind=override.kind,
        value=override.value,
        apply_once=override.apply_once,
        unit_price=unit_price,
        quantity=quantity,
        line_value=line_value,
        context=RuleContext.LINE_VALUE,
    )
    return clamp(amount, upper=line_value)
