# sales/tests/test_billing.py

from decimal import Decimal

from django.test import SimpleTestCase

from discounts.engine.types import (
    CatalogEntry,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    ManualOverride,
    SaleLine,
)
from sales.services.billing import build_bill, cart_share, tax_rate_for


class BillCalculatorTests(SimpleTestCase):
    def setUp(self):
        self.catalog = {
            "a": CatalogEntry(product_id="a", name="Antacid", selling_price=Decimal("100")),
            "b": CatalogEntry(product_id="b", name="Bandage", selling_price=Decimal("300")),
            "t": CatalogEntry(
                product_id="t",
                name="Taxed tonic",
                selling_price=Decimal("100"),
                tax_rate=Decimal("0.10"),
            ),
        }

    def test_cart_discount_shared_proportionally_before_tax(self):
        campaign = DiscountCampaign(
            id="c1",
            name="Forty off",
            global_cart_price_rule=DiscountRuleConfig(
                name="Forty off", kind=DiscountKind.FIXED, value=Decimal("40")
            ),
        )
        totals = build_bill(
            [
                SaleLine(product_id="a", unit_price=Decimal("100"), quantity=1),
                SaleLine(product_id="b", unit_price=Decimal("300"), quantity=1),
            ],
            campaign=campaign,
            catalog=self.catalog,
            tax_rate=Decimal("0.05"),
        )

        self.assertEqual(totals.total_cart_discount_amount, Decimal("40"))
        self.assertEqual(totals.net_subtotal, Decimal("360"))
        self.assertEqual([i.tax_amount for i in totals.items], [Decimal("4.5"), Decimal("13.5")])
        self.assertEqual(totals.tax_amount, Decimal("18"))
        self.assertEqual(totals.total_amount, Decimal("378"))

    def test_product_tax_rate_overrides_bill_rate(self):
        totals = build_bill(
            [SaleLine(product_id="t", unit_price=Decimal("100"), quantity=2)],
            campaign=None,
            catalog=self.catalog,
            tax_rate=Decimal("0.05"),
        )
        self.assertEqual(totals.tax_amount, Decimal("20"))
        self.assertEqual(totals.tax_rate, Decimal("0.05"))

    def test_line_snapshot_fields(self):
        override = ManualOverride(kind=DiscountKind.FIXED, value=Decimal("30"), apply_once=True)
        totals = build_bill(
            [
                SaleLine(
                    product_id="a",
                    unit_price=Decimal("100"),
                    quantity=3,
                    batch_id="batch-1",
                    manual_override=override,
                )
            ],
            campaign=None,
            catalog=self.catalog,
            tax_rate=Decimal("0"),
        )
        item = totals.items[0]

        self.assertEqual(item.name, "Antacid")
        self.assertEqual(item.batch_id, "batch-1")
        self.assertEqual(item.price_at_sale, Decimal("100"))
        self.assertEqual(item.total_discount_on_line, Decimal("30"))
        self.assertEqual(item.effective_price_paid_per_unit, Decimal("90"))
        self.assertEqual(item.manual_override, override)
        self.assertEqual(totals.total_amount, Decimal("270"))

    def test_helpers(self):
        self.assertEqual(
            tax_rate_for("t", catalog=self.catalog, bill_rate=Decimal("0.05")), Decimal("0.10")
        )
        self.assertEqual(
            tax_rate_for("missing", catalog=self.catalog, bill_rate=Decimal("0.05")),
            Decimal("0.05"),
        )
        self.assertEqual(
            cart_share(Decimal("0"), subtotal_after_items=Decimal("0"), cart_discount=Decimal("5")),
            Decimal("0"),
        )
