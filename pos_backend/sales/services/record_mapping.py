# sales/services/record_mapping.py

"""
SaleRecord <-> BillSnapshot mapping.

The persistence boundary: money is quantized to 2dp (ROUND_HALF_UP) here
and nowhere else.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from sales.models import SaleRecord
from sales.services.bill_snapshot import (
    BillSnapshot,
    ReturnLogEntry,
    SaleRecordItem,
    _money,
    applied_rule_from_json,
    applied_rule_to_json,
)

RATE_PLACES = Decimal("0.0001")


def _rate(v) -> Decimal:
    return Decimal(str(v or 0)).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def snapshot_from_record(record: SaleRecord) -> BillSnapshot:
    return BillSnapshot(
        bill_number=record.bill_number,
        status=record.status,
        items=tuple(SaleRecordItem.from_json(i) for i in (record.items or [])),
        subtotal_original=Decimal(record.subtotal_original),
        total_item_discount_amount=Decimal(record.total_item_discount_amount),
        total_cart_discount_amount=Decimal(record.total_cart_discount_amount),
        net_subtotal=Decimal(record.net_subtotal),
        tax_rate=Decimal(record.tax_rate),
        tax_amount=Decimal(record.tax_amount),
        total_amount=Decimal(record.total_amount),
        applied_discount_summary=tuple(
            applied_rule_from_json(r) for r in (record.applied_discount_summary or [])
        ),
        active_discount_set_id=(
            str(record.active_discount_set_id) if record.active_discount_set_id else None
        ),
        return_log=tuple(ReturnLogEntry.from_json(e) for e in (record.returned_items_log or [])),
        sale_record_id=str(record.id),
        original_sale_record_id=(
            str(record.original_sale_record_id) if record.original_sale_record_id else None
        ),
        is_credit_sale=record.is_credit_sale,
        amount_paid_by_customer=Decimal(record.amount_paid_by_customer or 0),
        credit_outstanding_amount=(
            Decimal(record.credit_outstanding_amount)
            if record.credit_outstanding_amount is not None
            else None
        ),
        credit_payment_status=record.credit_payment_status,
    )


def apply_snapshot(record: SaleRecord, bill: BillSnapshot, *, return_log=None) -> SaleRecord:
    """
    Copy a bill onto a (new or adjustment) record. Does not save.

    `return_log` overrides bill.return_log (a collapsed bill has an empty log
    but its adjustment row keeps the full history).
    """
    log = bill.return_log if return_log is None else return_log

    record.bill_number = bill.bill_number
    record.status = bill.status
    record.items = [item.to_json() for item in bill.items]
    record.subtotal_original = _money(bill.subtotal_original)
    record.total_item_discount_amount = _money(bill.total_item_discount_amount)
    record.total_cart_discount_amount = _money(bill.total_cart_discount_amount)
    record.net_subtotal = _money(bill.net_subtotal)
    record.tax_rate = _rate(bill.tax_rate)
    record.tax_amount = _money(bill.tax_amount)
    record.total_amount = _money(bill.total_amount)
    record.applied_discount_summary = [
        applied_rule_to_json(r) for r in bill.applied_discount_summary
    ]
    record.active_discount_set_id = bill.active_discount_set_id
    record.returned_items_log = [entry.to_json() for entry in log]
    record.is_credit_sale = bill.is_credit_sale
    record.amount_paid_by_customer = _money(bill.amount_paid_by_customer)
    record.credit_outstanding_amount = (
        _money(bill.credit_outstanding_amount)
        if bill.credit_outstanding_amount is not None
        else None
    )
    record.credit_payment_status = bill.credit_payment_status
    return record
