# sales/tests/test_return_engine.py

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from django.test import SimpleTestCase

from discounts.engine.types import (
    CatalogEntry,
    DiscountCampaign,
    DiscountKind,
    DiscountRuleConfig,
    SaleLine,
)
from sales.services.bill_snapshot import (
    STATUS_ADJUSTED_ACTIVE,
    STATUS_COMPLETED_ORIGINAL,
    BillSnapshot,
)
from sales.services.billing import build_bill
from sales.services.credit import FULLY_PAID, PARTIALLY_PAID, PENDING
from sales.services.exceptions import (
    AlreadyUndoneError,
    ReturnEntryNotFoundError,
    ReturnValidationError,
)
from sales.services.return_recalculation import ReturnRequest, recalculate_return
from sales.services.undo_return import undo_return

TAX = Decimal("0.05")

CATALOG = {
    "p1": CatalogEntry(product_id="p1", name="Widget", selling_price=Decimal("100")),
    "p2": CatalogEntry(product_id="p2", name="Gadget", selling_price=Decimal("40")),
}

CAMPAIGN = DiscountCampaign(
    id="c1",
    name="Bulk",
    default_value_rule=DiscountRuleConfig(
        name="10% over 500",
        kind=DiscountKind.PERCENTAGE,
        value=Decimal("10"),
        condition_min=Decimal("500"),
    ),
)


def _pristine(lines, *, campaign=CAMPAIGN, is_credit=False, paid=None):
    totals = build_bill(lines, campaign=campaign, catalog=CATALOG, tax_rate=TAX)
    return BillSnapshot(
        bill_number="BILL-0001",
        status=STATUS_COMPLETED_ORIGINAL,
        items=totals.items,
        subtotal_original=totals.subtotal_original,
        total_item_discount_amount=totals.total_item_discount_amount,
        total_cart_discount_amount=totals.total_cart_discount_amount,
        net_subtotal=totals.net_subtotal,
        tax_rate=totals.tax_rate,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        applied_discount_summary=totals.computation.audit_log,
        active_discount_set_id=campaign.id if campaign else None,
        sale_record_id="pristine-1",
        is_credit_sale=is_credit,
        amount_paid_by_customer=paid if paid is not None else totals.total_amount,
        credit_outstanding_amount=totals.total_amount if is_credit else None,
        credit_payment_status=PENDING if is_credit else None,
    )


def _return(pristine, *requests, active=None, txn="rt1"):
    return recalculate_return(
        pristine=pristine,
        active=active,
        requests=[ReturnRequest(product_id=pid, quantity=qty) for pid, qty in requests],
        campaign=CAMPAIGN,
        catalog=CATALOG,
        return_transaction_id=txn,
    )


def _undo(pristine, active, entry_id):
    return undo_return(
        pristine=pristine,
        active=active,
        entry_id=entry_id,
        campaign=CAMPAIGN,
        catalog=CATALOG,
    )


TEN_WIDGETS = [SaleLine(product_id="p1", unit_price=Decimal("100"), quantity=10)]


class ReturnRecalculationTests(SimpleTestCase):
    """
    GUARANTEES:
    - Adjusted bill is always re-priced from the pristine original
    - Invalid requests are rejected before anything is computed
    """

    def test_pristine_bill(self):
        pristine = _pristine(TEN_WIDGETS)
        self.assertEqual(pristine.total_item_discount_amount, Decimal("100"))
        self.assertEqual(pristine.net_subtotal, Decimal("900"))
        self.assertEqual(pristine.tax_amount, Decimal("45"))
        self.assertEqual(pristine.total_amount, Decimal("945"))

    def test_partial_return_reprices_kept_quantity(self):
        outcome = _return(_pristine(TEN_WIDGETS), ("p1", 4))
        bill = outcome.bill

        self.assertEqual(bill.status, STATUS_ADJUSTED_ACTIVE)
        self.assertEqual(bill.items[0].quantity, 6)
        self.assertEqual(bill.total_item_discount_amount, Decimal("60"))
        self.assertEqual(bill.net_subtotal, Decimal("540"))
        self.assertEqual(bill.tax_amount, Decimal("27"))
        self.assertEqual(bill.total_amount, Decimal("567"))
        self.assertEqual(bill.original_sale_record_id, "pristine-1")

        entry = outcome.new_entries[0]
        self.assertEqual(entry.id, "rt1-1")
        self.assertEqual(entry.refund_per_unit, Decimal("90"))
        self.assertEqual(entry.total_refund, Decimal("360"))
        self.assertFalse(entry.is_undone)
        self.assertEqual(bill.return_log, (entry,))

    def test_return_can_lose_threshold_discount(self):
        outcome = _return(_pristine(TEN_WIDGETS), ("p1", 6))
        # 4 kept -> line value 400 < 500, rule no longer applies
        self.assertEqual(outcome.bill.total_item_discount_amount, Decimal("0"))
        self.assertEqual(outcome.bill.total_amount, Decimal("420"))

    def test_full_return_drops_the_line(self):
        lines = TEN_WIDGETS + [SaleLine(product_id="p2", unit_price=Decimal("40"), quantity=1)]
        outcome = _return(_pristine(lines), ("p2", 1))
        self.assertEqual([item.product_id for item in outcome.bill.items], ["p1"])

    def test_log_is_append_only_across_returns(self):
        pristine = _pristine(TEN_WIDGETS)
        first = _return(pristine, ("p1", 2), txn="a")
        second = _return(pristine, ("p1", 3), active=first.bill, txn="b")

        self.assertEqual([e.id for e in second.bill.return_log], ["a-1", "b-1"])
        self.assertEqual(second.bill.items[0].quantity, 5)
        # refund at the price paid on the live bill when returned
        self.assertEqual(second.new_entries[0].refund_per_unit, Decimal("90"))

    def test_validation_errors(self):
        pristine = _pristine(TEN_WIDGETS)
        cases = [
            [("p1", 11)],
            [("p1", 6), ("p1", 5)],
            [("p1", 0)],
            [("p1", "two")],
            [("ghost", 1)],
        ]
        for requests in cases:
            with self.subTest(requests=requests):
                with self.assertRaises(ReturnValidationError):
                    _return(pristine, *requests)

    def test_cannot_return_more_than_kept(self):
        pristine = _pristine(TEN_WIDGETS)
        first = _return(pristine, ("p1", 6))
        with self.assertRaises(ReturnValidationError):
            _return(pristine, ("p1", 5), active=first.bill, txn="again")

    def test_reused_transaction_id_rejected(self):
        pristine = _pristine(TEN_WIDGETS)
        first = _return(pristine, ("p1", 2), txn="rt-1")

        with self.assertRaises(ReturnValidationError):
            _return(pristine, ("p1", 3), active=first.bill, txn="rt-1")

    def test_batch_must_match_original_line(self):
        pristine = _pristine(TEN_WIDGETS)
        with self.assertRaises(ReturnValidationError):
            recalculate_return(
                pristine=pristine,
                requests=[ReturnRequest(product_id="p1", quantity=1, batch_id="other")],
                campaign=CAMPAIGN,
                catalog=CATALOG,
                return_transaction_id="rt1",
            )

    def test_deterministic(self):
        pristine = _pristine(TEN_WIDGETS)
        self.assertEqual(_return(pristine, ("p1", 4)), _return(pristine, ("p1", 4)))

    def test_credit_state_rederived(self):
        pristine = _pristine(TEN_WIDGETS, is_credit=True, paid=Decimal("0"))
        outcome = _return(pristine, ("p1", 4))
        self.assertEqual(outcome.bill.credit_outstanding_amount, Decimal("567"))
        self.assertEqual(outcome.bill.credit_payment_status, PARTIALLY_PAID)

        paid_more = _pristine(TEN_WIDGETS, is_credit=True, paid=Decimal("600"))
        outcome = _return(paid_more, ("p1", 4))
        self.assertEqual(outcome.bill.credit_outstanding_amount, Decimal("0"))
        self.assertEqual(outcome.bill.credit_payment_status, FULLY_PAID)


class UndoReturnTests(SimpleTestCase):
    def test_undo_only_return_collapses_to_pristine(self):
        pristine = _pristine(TEN_WIDGETS)
        returned = _return(pristine, ("p1", 4))

        outcome = _undo(pristine, returned.bill, "rt1-1")

        self.assertTrue(outcome.collapsed)
        self.assertEqual(outcome.bill.status, STATUS_COMPLETED_ORIGINAL)
        self.assertEqual(outcome.bill.items, pristine.items)
        self.assertEqual(outcome.bill.items[0].quantity, 10)
        self.assertEqual(outcome.bill.total_amount, Decimal("945"))
        self.assertEqual(outcome.bill.return_log, ())

        self.assertEqual(len(outcome.return_log), 1)
        self.assertTrue(outcome.return_log[0].is_undone)
        self.assertEqual(outcome.undone_entry.id, "rt1-1")

    def test_undo_one_of_two_equals_never_having_made_it(self):
        pristine = _pristine(TEN_WIDGETS)
        first = _return(pristine, ("p1", 2), txn="a")
        second = _return(pristine, ("p1", 3), active=first.bill, txn="b")

        outcome = _undo(pristine, second.bill, "b-1")

        self.assertFalse(outcome.collapsed)
        self.assertEqual(outcome.bill.items, first.bill.items)
        self.assertEqual(outcome.bill.total_amount, first.bill.total_amount)
        self.assertEqual(
            [(e.id, e.is_undone) for e in outcome.bill.return_log],
            [("a-1", False), ("b-1", True)],
        )

    def test_undo_twice_rejected(self):
        pristine = _pristine(TEN_WIDGETS)
        first = _return(pristine, ("p1", 2), txn="a")
        second = _return(pristine, ("p1", 3), active=first.bill, txn="b")
        undone = _undo(pristine, second.bill, "b-1")

        with self.assertRaises(AlreadyUndoneError):
            _undo(pristine, undone.bill, "b-1")

    def test_unknown_entry_rejected(self):
        pristine = _pristine(TEN_WIDGETS)
        returned = _return(pristine, ("p1", 2))
        with self.assertRaises(ReturnEntryNotFoundError):
            _undo(pristine, returned.bill, "nope")

    def test_collapse_rederives_credit_from_payments(self):
        pristine = _pristine(TEN_WIDGETS, is_credit=True, paid=Decimal("0"))
        returned = _return(pristine, ("p1", 4))

        outcome = _undo(pristine, returned.bill, "rt1-1")

        self.assertEqual(outcome.bill.credit_outstanding_amount, Decimal("945"))
        self.assertEqual(outcome.bill.credit_payment_status, PENDING)

    def test_ambiguous_entry_id_rejected(self):
        pristine = _pristine(TEN_WIDGETS)
        returned = _return(pristine, ("p1", 2))
        entry = returned.bill.return_log[0]
        doubled = replace(returned.bill, return_log=(entry, replace(entry, quantity=3)))

        with self.assertRaises(ReturnValidationError):
            _undo(pristine, doubled, "rt1-1")
