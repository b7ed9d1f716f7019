# discounts/tests/test_rule_evaluator.py

from decimal import Decimal

from django.test import SimpleTestCase

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.rule_evaluator import evaluate_override, evaluate_rule
from discounts.engine.types import (
    DiscountKind,
    DiscountRuleConfig,
    ManualOverride,
    RuleContext,
)


def _rule(kind=DiscountKind.PERCENTAGE, value="10", **kwargs):
    return DiscountRuleConfig(name=kwargs.pop("name", "Rule"), kind=kind, value=Decimal(value), **kwargs)


def _eval(rule, *, unit_price, quantity, context):
    unit_price = Decimal(unit_price)
    return evaluate_rule(
        rule,
        unit_price=unit_price,
        quantity=quantity,
        line_value=unit_price * quantity,
        context=context,
    )


class RuleEvaluatorTests(SimpleTestCase):
    """
    GUARANTEES:
    - Disabled / missing / unmet rules evaluate to zero
    - Output is always within [0, line value]
    """

    def test_percentage_by_line_value_over_threshold(self):
        rule = _rule(value="10", condition_min=Decimal("500"))
        amount = _eval(rule, unit_price="100", quantity=10, context=RuleContext.LINE_VALUE)
        self.assertEqual(amount, Decimal("100"))

    def test_condition_below_minimum_gives_zero(self):
        rule = _rule(value="10", condition_min=Decimal("500"))
        amount = _eval(rule, unit_price="100", quantity=4, context=RuleContext.LINE_VALUE)
        self.assertEqual(amount, Decimal("0"))

    def test_condition_above_maximum_gives_zero(self):
        rule = _rule(value="10", condition_max=Decimal("5"))
        amount = _eval(rule, unit_price="10", quantity=6, context=RuleContext.QUANTITY)
        self.assertEqual(amount, Decimal("0"))

    def test_missing_and_disabled_rules_give_zero(self):
        self.assertEqual(
            _eval(None, unit_price="10", quantity=1, context=RuleContext.LINE_VALUE),
            Decimal("0"),
        )
        disabled = _rule(value="50", enabled=False)
        self.assertEqual(
            _eval(disabled, unit_price="10", quantity=1, context=RuleContext.LINE_VALUE),
            Decimal("0"),
        )

    def test_fixed_is_per_unit_unless_applied_once(self):
        per_unit = _rule(kind=DiscountKind.FIXED, value="5")
        once = _rule(kind=DiscountKind.FIXED, value="5", apply_once=True)

        self.assertEqual(
            _eval(per_unit, unit_price="20", quantity=3, context=RuleContext.QUANTITY),
            Decimal("15"),
        )
        self.assertEqual(
            _eval(once, unit_price="20", quantity=3, context=RuleContext.QUANTITY),
            Decimal("5"),
        )

    def test_percentage_by_quantity_uses_unit_price_times_quantity(self):
        rule = _rule(value="10", condition_min=Decimal("3"))
        amount = _eval(rule, unit_price="20", quantity=3, context=RuleContext.QUANTITY)
        self.assertEqual(amount, Decimal("6"))

    def test_specific_unit_price_condition(self):
        rule = _rule(value="10", condition_max=Decimal("50"))
        self.assertEqual(
            _eval(rule, unit_price="60", quantity=1, context=RuleContext.SPECIFIC_UNIT_PRICE),
            Decimal("0"),
        )
        self.assertEqual(
            _eval(rule, unit_price="40", quantity=2, context=RuleContext.SPECIFIC_UNIT_PRICE),
            Decimal("8"),
        )

    def test_amount_is_clamped_to_line_value(self):
        fixed = _rule(kind=DiscountKind.FIXED, value="50")
        over_hundred = _rule(value="150")

        self.assertEqual(
            _eval(fixed, unit_price="20", quantity=2, context=RuleContext.QUANTITY),
            Decimal("40"),
        )
        self.assertEqual(
            _eval(over_hundred, unit_price="20", quantity=2, context=RuleContext.LINE_VALUE),
            Decimal("40"),
        )

    def test_zero_value_line_gives_zero(self):
        rule = _rule(kind=DiscountKind.FIXED, value="5", apply_once=True)
        self.assertEqual(
            _eval(rule, unit_price="0", quantity=3, context=RuleContext.QUANTITY),
            Decimal("0"),
        )

    def test_manual_override_math(self):
        fixed_once = ManualOverride(kind=DiscountKind.FIXED, value=Decimal("10"), apply_once=True)
        half = ManualOverride(kind=DiscountKind.PERCENTAGE, value=Decimal("50"))

        self.assertEqual(
            evaluate_override(
                fixed_once, unit_price=Decimal("30"), quantity=2, line_value=Decimal("60")
            ),
            Decimal("10"),
        )
        self.assertEqual(
            evaluate_override(half, unit_price=Decimal("30"), quantity=2, line_value=Decimal("60")),
            Decimal("30"),
        )


class RuleConfigValidationTests(SimpleTestCase):
    def test_negative_value_rejected(self):
        with self.assertRaises(ConfigurationError):
            _rule(value="-1")

    def test_min_above_max_rejected(self):
        with self.assertRaises(ConfigurationError):
            _rule(condition_min=Decimal("10"), condition_max=Decimal("5"))

    def test_unknown_kind_rejected(self):
        with self.assertRaises(ConfigurationError):
            DiscountRuleConfig(name="Bad", kind="bogus", value=Decimal("1"))

    def test_values_are_coerced_to_decimal(self):
        rule = DiscountRuleConfig(name="Coerced", kind=DiscountKind.FIXED, value=3, condition_min="1.5")
        self.assertEqual(rule.value, Decimal("3"))
        self.assertEqual(rule.condition_min, Decimal("1.5"))
