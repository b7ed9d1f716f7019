# discounts/tests/test_cart_resolver.py

from decimal import Decimal

from django.test import SimpleTestCase

from discounts.engine import compute
from discounts.engine.types import (
    CatalogEntry,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    RuleType,
    SaleLine,
)

CATALOG = {
    "p1": CatalogEntry(product_id="p1", name="Blood pressure monitor", selling_price=Decimal("950")),
    "p2": CatalogEntry(product_id="p2", name="Thermometer", selling_price=Decimal("50")),
}


def _rule(name, kind, value, **kwargs):
    return DiscountRuleConfig(name=name, kind=kind, value=Decimal(value), **kwargs)


class CartDiscountTests(SimpleTestCase):
    def test_fixed_cart_rule_below_threshold_gives_nothing(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Big basket",
            global_cart_price_rule=_rule(
                "200 off 2000", DiscountKind.FIXED, "200", condition_min=Decimal("2000")
            ),
        )
        result = compute(
            [SaleLine(product_id="p1", unit_price=Decimal("950"), quantity=2)],
            campaign,
            CATALOG,
        )
        self.assertEqual(result.cart_discount_total, Decimal("0"))
        self.assertEqual(result.cart_rules_applied, ())

    def test_fixed_cart_rule_over_threshold(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Big basket",
            global_cart_price_rule=_rule(
                "200 off 2000", DiscountKind.FIXED, "200", condition_min=Decimal("2000")
            ),
        )
        result = compute(
            [SaleLine(product_id="p1", unit_price=Decimal("950"), quantity=3)],
            campaign,
            CATALOG,
        )
        self.assertEqual(result.cart_discount_total, Decimal("200"))
        self.assertEqual(result.cart_rules_applied[0].rule_type, RuleType.GLOBAL_CART_PRICE)

    def test_percentage_uses_post_item_subtotal(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Combined",
            default_value_rule=_rule("Ten percent", DiscountKind.PERCENTAGE, "10"),
            global_cart_price_rule=_rule("Five percent cart", DiscountKind.PERCENTAGE, "5"),
        )
        result = compute(
            [SaleLine(product_id="p2", unit_price=Decimal("50"), quantity=4)],
            campaign,
            CATALOG,
        )
        # items: 200 - 20 = 180; cart: 5% of 180
        self.assertEqual(result.item_discount_total, Decimal("20"))
        self.assertEqual(result.cart_discount_total, Decimal("9"))

    def test_both_cart_rules_never_exceed_subtotal(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Generous",
            global_cart_price_rule=_rule("80 off", DiscountKind.FIXED, "80"),
            global_cart_quantity_rule=_rule(
                "50 off for one or more", DiscountKind.FIXED, "50", condition_min=Decimal("1")
            ),
        )
        result = compute(
            [SaleLine(product_id="p2", unit_price=Decimal("50"), quantity=2)],
            campaign,
            CATALOG,
        )
        self.assertEqual(result.cart_discount_total, Decimal("100"))
        self.assertEqual(
            [r.amount for r in result.cart_rules_applied],
            [Decimal("80"), Decimal("20")],
        )

    def test_quantity_rule_condition(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Bulk",
            global_cart_quantity_rule=_rule(
                "Bulk five", DiscountKind.FIXED, "5", condition_min=Decimal("10")
            ),
        )
        few = compute(
            [SaleLine(product_id="p2", unit_price=Decimal("50"), quantity=9)], campaign, CATALOG
        )
        many = compute(
            [SaleLine(product_id="p2", unit_price=Decimal("50"), quantity=10)], campaign, CATALOG
        )
        self.assertEqual(few.cart_discount_total, Decimal("0"))
        self.assertEqual(many.cart_discount_total, Decimal("5"))
