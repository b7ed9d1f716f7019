# discounts/tests/test_campaign_snapshot.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from discounts.engine.types import DiscountKind
from discounts.models import DiscountSet, ProductDiscountConfiguration
from discounts.services.campaign_snapshot import load_campaign, load_campaign_by_id
from products.models import Product


class DiscountSetModelTests(TestCase):
    """
    GUARANTEES:
    - Malformed rule blobs never reach the database
    - Persisted sets load into immutable engine snapshots
    """

    def setUp(self):
        self.product = Product.objects.create(
            sku="VIT-C",
            name="Vitamin C",
            unit_price=Decimal("100.00"),
        )

    def test_malformed_rule_rejected_on_save(self):
        with self.assertRaises(ValidationError):
            DiscountSet.objects.create(
                name="Broken",
                default_line_item_value_rule={"isEnabled": True, "type": "bogus", "value": 10},
            )
        self.assertFalse(DiscountSet.objects.filter(name="Broken").exists())

    def test_malformed_buy_get_rule_rejected_on_save(self):
        with self.assertRaises(ValidationError):
            DiscountSet.objects.create(
                name="Broken BOGO",
                buy_get_rules=[{"buyProductId": "a", "buyQuantity": 0}],
            )

    def test_product_configuration_rules_validated(self):
        discount_set = DiscountSet.objects.create(name="Spring")
        with self.assertRaises(ValidationError):
            ProductDiscountConfiguration.objects.create(
                discount_set=discount_set,
                product=self.product,
                line_item_value_rule={"isEnabled": True, "type": "fixed", "value": -5},
            )

    def test_load_campaign_snapshot(self):
        discount_set = DiscountSet.objects.create(
            name="Spring",
            default_line_item_value_rule={
                "isEnabled": True,
                "name": "10% over 500",
                "type": "percentage",
                "value": 10,
                "conditionMin": 500,
            },
            buy_get_rules=[
                {
                    "buyProductId": str(self.product.id),
                    "buyQuantity": 2,
                    "getProductId": str(self.product.id),
                    "getQuantity": 1,
                    "discountType": "percentage",
                    "discountValue": 100,
                    "isRepeatable": False,
                }
            ],
        )
        ProductDiscountConfiguration.objects.create(
            discount_set=discount_set,
            product=self.product,
            line_item_quantity_rule={"isEnabled": True, "type": "fixed", "value": 2},
        )

        campaign = load_campaign_by_id(discount_set.id)

        self.assertEqual(campaign.id, str(discount_set.id))
        self.assertEqual(campaign.name, "Spring")
        self.assertEqual(campaign.default_value_rule.condition_min, Decimal("500"))
        self.assertEqual(len(campaign.buy_get_rules), 1)

        config = campaign.product_configurations[str(self.product.id)]
        self.assertTrue(config.is_active)
        self.assertEqual(config.quantity_rule.kind, DiscountKind.FIXED)

    def test_missing_set_yields_no_campaign(self):
        self.assertIsNone(load_campaign(None))
        self.assertIsNone(load_campaign_by_id(None))

        with self.assertLogs("discounts.services.campaign_snapshot", level="WARNING"):
            self.assertIsNone(load_campaign_by_id(uuid.uuid4()))
