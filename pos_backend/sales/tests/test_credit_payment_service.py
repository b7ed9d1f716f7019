# sales/tests/test_credit_payment_service.py

from decimal import Decimal

from django.test import TestCase

from discounts.models import DiscountSet
from products.models import Product, StockBatch
from sales.models import PaymentInstallment, SaleRecord
from sales.services.credit_payment_service import record_credit_payment
from sales.services.exceptions import PaymentValidationError
from sales.services.return_orchestrator import process_return, undo_return_item
from sales.services.sale_service import commit_sale


class CreditPaymentServiceTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(
            sku="WID-1",
            name="Widget",
            unit_price=Decimal("100.00"),
        )
        StockBatch.objects.create(
            product=self.product,
            batch_number="WID-B1",
            quantity_remaining=20,
        )
        self.discount_set = DiscountSet.objects.create(
            name="Bulk",
            default_line_item_value_rule={
                "isEnabled": True,
                "name": "10% over 500",
                "type": "percentage",
                "value": 10,
                "conditionMin": 500,
            },
        )

    def _sell(self, **kwargs):
        kwargs.setdefault("payment_method", "credit")
        return commit_sale(
            lines=[{"product_id": str(self.product.id), "quantity": 10}],
            discount_set_id=self.discount_set.id,
            tax_rate="0.05",
            **kwargs,
        )

    def test_installment_reduces_outstanding(self):
        sale = self._sell()
        self.assertEqual(sale.credit_payment_status, SaleRecord.CreditStatus.PENDING)

        installment = record_credit_payment(sale_record_id=sale.id, amount="500", method="Card")

        self.assertEqual(installment.amount_paid, Decimal("500.00"))
        self.assertEqual(installment.method, "card")

        sale.refresh_from_db()
        self.assertEqual(sale.amount_paid_by_customer, Decimal("500.00"))
        self.assertEqual(sale.credit_outstanding_amount, Decimal("445.00"))
        self.assertEqual(sale.credit_payment_status, SaleRecord.CreditStatus.PARTIALLY_PAID)
        self.assertIsNotNone(sale.credit_last_payment_date)

    def test_overpayment_rejected(self):
        sale = self._sell()

        with self.assertRaises(PaymentValidationError):
            record_credit_payment(sale_record_id=sale.id, amount="946")

        self.assertFalse(PaymentInstallment.objects.exists())
        sale.refresh_from_db()
        self.assertEqual(sale.credit_outstanding_amount, Decimal("945.00"))

    def test_non_credit_sale_rejected(self):
        sale = self._sell(payment_method="cash")

        with self.assertRaises(PaymentValidationError):
            record_credit_payment(sale_record_id=sale.id, amount="10")

    def test_fully_paid_sale_rejected(self):
        sale = self._sell(amount_paid="945")
        self.assertEqual(sale.credit_payment_status, SaleRecord.CreditStatus.FULLY_PAID)

        with self.assertRaises(PaymentValidationError):
            record_credit_payment(sale_record_id=sale.id, amount="1")

    def test_payment_after_return_lands_on_adjustment(self):
        sale = self._sell()
        adjustment = process_return(
            sale_record_id=sale.id,
            items=[{"product_id": str(self.product.id), "quantity": 4}],
            return_transaction_id="rt-1",
        )
        self.assertEqual(adjustment.credit_outstanding_amount, Decimal("567.00"))
        self.assertEqual(adjustment.credit_payment_status, SaleRecord.CreditStatus.PARTIALLY_PAID)

        installment = record_credit_payment(sale_record_id=sale.id, amount="567")
        self.assertEqual(installment.sale_record_id, adjustment.id)

        adjustment.refresh_from_db()
        self.assertEqual(adjustment.credit_outstanding_amount, Decimal("0.00"))
        self.assertEqual(adjustment.credit_payment_status, SaleRecord.CreditStatus.FULLY_PAID)

        sale.refresh_from_db()
        self.assertEqual(sale.credit_outstanding_amount, Decimal("945.00"))

        # undo restores the full bill; what was already paid still counts
        result = undo_return_item(master_sale_record_id=sale.id, return_entry_id="rt-1-1")
        self.assertEqual(result.record.amount_paid_by_customer, Decimal("567.00"))
        self.assertEqual(result.record.credit_outstanding_amount, Decimal("378.00"))
        self.assertEqual(
            result.record.credit_payment_status, SaleRecord.CreditStatus.PARTIALLY_PAID
        )

    def test_payment_by_adjustment_id_lands_on_adjustment(self):
        sale = self._sell()
        adjustment = process_return(
            sale_record_id=sale.id,
            items=[{"product_id": str(self.product.id), "quantity": 4}],
        )

        installment = record_credit_payment(sale_record_id=adjustment.id, amount="100")
        self.assertEqual(installment.sale_record_id, adjustment.id)

        adjustment.refresh_from_db()
        self.assertEqual(adjustment.credit_outstanding_amount, Decimal("467.00"))
