# discounts/tests/test_item_resolver.py

from decimal import Decimal

from django.test import SimpleTestCase

from discounts.engine.item_resolver import resolve_line
from discounts.engine.types import (
    MANUAL_OVERRIDE_CAMPAIGN,
    CatalogEntry,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    ManualOverride,
    ProductDiscountConfiguration,
    RuleType,
    SaleLine,
)

CATALOG = {
    "p1": CatalogEntry(product_id="p1", name="Paracetamol", selling_price=Decimal("100")),
    "p2": CatalogEntry(product_id="p2", name="Ibuprofen", selling_price=Decimal("10")),
}

TEN_PERCENT = DiscountRuleConfig(name="Ten percent", kind=DiscountKind.PERCENTAGE, value=Decimal("10"))
FIVE_PER_UNIT = DiscountRuleConfig(name="Five off each", kind=DiscountKind.FIXED, value=Decimal("5"))


def _campaign(**kwargs):
    return DiscountCampaign(id="c1", name="Spring", **kwargs)


class ItemResolverTests(SimpleTestCase):
    """
    Precedence: manual override > active product config > campaign defaults.
    """

    def test_defaults_apply_without_product_config(self):
        campaign = _campaign(default_value_rule=TEN_PERCENT)
        result = resolve_line(
            SaleLine(product_id="p1", unit_price=Decimal("100"), quantity=2),
            campaign=campaign,
            catalog=CATALOG,
        )
        self.assertEqual(result.discount.total_for_line, Decimal("20"))
        self.assertEqual(result.discount.per_unit_equivalent, Decimal("10"))
        self.assertEqual(result.records[0].rule_type, RuleType.DEFAULT_LINE_VALUE)

    def test_active_product_config_replaces_defaults(self):
        campaign = _campaign(
            default_value_rule=TEN_PERCENT,
            product_configurations={
                "p1": ProductDiscountConfiguration(product_id="p1", quantity_rule=FIVE_PER_UNIT),
            },
        )
        result = resolve_line(
            SaleLine(product_id="p1", unit_price=Decimal("100"), quantity=2),
            campaign=campaign,
            catalog=CATALOG,
        )
        self.assertEqual(result.discount.total_for_line, Decimal("10"))
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records[0].rule_type, RuleType.PRODUCT_LINE_QUANTITY)

    def test_inactive_product_config_falls_back_to_defaults(self):
        campaign = _campaign(
            default_value_rule=TEN_PERCENT,
            product_configurations={
                "p1": ProductDiscountConfiguration(
                    product_id="p1", is_active=False, quantity_rule=FIVE_PER_UNIT
                ),
            },
        )
        result = resolve_line(
            SaleLine(product_id="p1", unit_price=Decimal("100"), quantity=2),
            campaign=campaign,
            catalog=CATALOG,
        )
        self.assertEqual(result.discount.total_for_line, Decimal("20"))

    def test_slots_stack_in_order(self):
        one_off_each = DiscountRuleConfig(name="One off", kind=DiscountKind.FIXED, value=Decimal("1"))
        campaign = _campaign(default_value_rule=TEN_PERCENT, default_quantity_rule=one_off_each)
        result = resolve_line(
            SaleLine(product_id="p2", unit_price=Decimal("10"), quantity=10),
            campaign=campaign,
            catalog=CATALOG,
        )
        self.assertEqual(result.discount.total_for_line, Decimal("20"))
        self.assertEqual(result.discount.rule_name, "Ten percent, One off")
        self.assertEqual(
            [r.rule_type for r in result.records],
            [RuleType.DEFAULT_LINE_VALUE, RuleType.DEFAULT_LINE_QUANTITY],
        )

    def test_manual_override_short_circuits_campaign(self):
        campaign = _campaign(default_value_rule=TEN_PERCENT)
        line = SaleLine(
            product_id="p1",
            unit_price=Decimal("100"),
            quantity=1,
            manual_override=ManualOverride(kind=DiscountKind.FIXED, value=Decimal("3")),
        )
        result = resolve_line(line, campaign=campaign, catalog=CATALOG)

        self.assertTrue(result.is_overridden)
        self.assertEqual(result.discount.total_for_line, Decimal("3"))
        self.assertEqual(result.discount.campaign_name, MANUAL_OVERRIDE_CAMPAIGN)
        self.assertEqual([r.rule_type for r in result.records], [RuleType.MANUAL_OVERRIDE])

    def test_inactive_or_missing_campaign_gives_nothing(self):
        line = SaleLine(product_id="p1", unit_price=Decimal("100"), quantity=1)
        inactive = _campaign(is_active=False, default_value_rule=TEN_PERCENT)

        self.assertIsNone(resolve_line(line, campaign=None, catalog=CATALOG).discount)
        self.assertIsNone(resolve_line(line, campaign=inactive, catalog=CATALOG).discount)

    def test_product_missing_from_catalog_is_logged_and_skipped(self):
        campaign = _campaign(default_value_rule=TEN_PERCENT)
        line = SaleLine(product_id="ghost", unit_price=Decimal("100"), quantity=1)

        with self.assertLogs("discounts.engine.item_resolver", level="WARNING"):
            result = resolve_line(line, campaign=campaign, catalog=CATALOG)

        self.assertIsNone(result.discount)
        self.assertEqual(result.records, ())
