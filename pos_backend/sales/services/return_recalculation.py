# sales/services/return_recalculation.py

"""
RETURN RECALCULATION ENGINE (PURE)

Re-prices a bill from its PRISTINE original after returns.

GUARANTEES:
- Validation happens before anything is computed (ReturnValidationError)
- The pristine bill is the only pricing base; the adjusted bill is rebuilt
  from scratch every time (never patched incrementally)
- Same inputs -> same adjusted bill (ids and timestamps come from the caller)
- The return log is append-only: new entries are added after existing ones

FLOW:
1) Validate requests against kept quantities on the pristine lines
2) New log entries, refunded at the effective price on the CURRENT bill
3) Kept quantity per line = original - sum(active entries); kept <= 0 dropped
4) Re-resolve prices (batch > product > price at sale) and re-run the
   discount engine with the ORIGINAL campaign snapshot
5) Tax / totals via the shared bill calculator; credit state re-derived
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping

from discounts.engine.types import CatalogEntry, DiscountCampaign, SaleLine
from sales.services.bill_snapshot import (
    STATUS_ADJUSTED_ACTIVE,
    BillSnapshot,
    ReturnLogEntry,
    active_entries,
    line_key,
)
from sales.services.billing import build_bill
from sales.services.credit import derive_credit_state
from sales.services.exceptions import ReturnValidationError


@dataclass(frozen=True)
class ReturnRequest:
    product_id: str
    quantity: int
    batch_id: str | None = None

    @property
    def key(self) -> tuple[str, str | None]:
        return line_key(self.product_id, self.batch_id)


@dataclass(frozen=True)
class ReturnOutcome:
    bill: BillSnapshot
    new_entries: tuple[ReturnLogEntry, ...]


def _to_int_qty(value) -> int:
    if isinstance(value, bool):
        raise ReturnValidationError("quantity must be a whole integer unit")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ReturnValidationError("quantity must be a whole integer unit")


def kept_quantities(pristine: BillSnapshot, log: Iterable[ReturnLogEntry]) -> dict:
    returned = defaultdict(int)
    for entry in active_entries(log):
        returned[entry.key] += entry.quantity
    return {item.key: item.quantity - returned[item.key] for item in pristine.items}


def validate_return_requests(
    pristine: BillSnapshot,
    log: Iterable[ReturnLogEntry],
    requests: Iterable[ReturnRequest],
) -> tuple[ReturnRequest, ...]:
    requests = tuple(requests)
    kept = kept_quantities(pristine, log)
    requested = defaultdict(int)

    for req in requests:
        qty = _to_int_qty(req.quantity)
        if qty < 1:
            raise ReturnValidationError(
                f"Return quantity for product {req.product_id} must be at least 1"
            )
        if req.key not in kept:
            raise ReturnValidationError(
                f"Product {req.product_id}"
                + (f" (batch {req.batch_id})" if req.batch_id else "")
                + " is not on the original bill"
            )
        requested[req.key] += qty

    for key, qty in requested.items():
        if qty > kept[key]:
            raise ReturnValidationError(
                f"Cannot return {qty} unit(s) of product {key[0]}: "
                f"only {max(kept[key], 0)} kept on the bill"
            )

    return tuple(replace(req, quantity=_to_int_qty(req.quantity)) for req in requests)


def _price_for(item, catalog: Mapping[str, CatalogEntry]) -> Decimal:
    entry = catalog.get(item.product_id)
    if entry is None:
        return item.price_at_sale
    return entry.price_for(item.batch_id)


def rebuild_adjusted_bill(
    *,
    pristine: BillSnapshot,
    log: tuple[ReturnLogEntry, ...],
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
    amount_paid: Decimal,
    sale_record_id: str | None = None,
) -> BillSnapshot:
    kept = kept_quantities(pristine, log)

    lines = []
    names = {}
    for item in pristine.items:
        quantity = kept[item.key]
        if quantity <= 0:
            continue
        line = SaleLine(
            product_id=item.product_id,
            unit_price=_price_for(item, catalog),
            quantity=quantity,
            batch_id=item.batch_id,
            manual_override=item.manual_override,
        )
        lines.append(line)
        names[line.line_id] = item.name

    totals = build_bill(
        lines,
        campaign=campaign,
        catalog=catalog,
        tax_rate=pristine.tax_rate,
        names=names,
    )

    credit_outstanding = None
    credit_status = None
    if pristine.is_credit_sale:
        state = derive_credit_state(
            total=totals.total_amount,
            amount_paid=amount_paid,
            has_active_returns=bool(active_entries(log)),
        )
        credit_outstanding = state.outstanding
        credit_status = state.status

    return BillSnapshot(
        bill_number=pristine.bill_number,
        status=STATUS_ADJUSTED_ACTIVE,
        items=totals.items,
        subtotal_original=totals.subtotal_original,
        total_item_discount_amount=totals.total_item_discount_amount,
        total_cart_discount_amount=totals.total_cart_discount_amount,
        net_subtotal=totals.net_subtotal,
        tax_rate=totals.tax_rate,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        applied_discount_summary=totals.computation.audit_log,
        active_discount_set_id=pristine.active_discount_set_id,
        return_log=tuple(log),
        sale_record_id=sale_record_id,
        original_sale_record_id=pristine.sale_record_id,
        is_credit_sale=pristine.is_credit_sale,
        amount_paid_by_customer=amount_paid,
        credit_outstanding_amount=credit_outstanding,
        credit_payment_status=credit_status,
    )


def recalculate_return(
    *,
    pristine: BillSnapshot,
    requests: Iterable[ReturnRequest],
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
    return_transaction_id: str,
    active: BillSnapshot | None = None,
    returned_at: datetime | None = None,
) -> ReturnOutcome:
    """
    Apply new returns to a bill.

    `active` is the current live bill (adjusted) when one exists; its log and
    effective prices are the starting point. Without it the pristine bill is
    the live bill.
    """
    current = active if active is not None else pristine
    current_log = tuple(current.return_log)

    if any(entry.return_transaction_id == return_transaction_id for entry in current_log):
        raise ReturnValidationError(
            f"Return transaction {return_transaction_id} was already processed on this bill"
        )

    requests = validate_return_requests(pristine, current_log, requests)

    taken_ids = {entry.id for entry in current_log}
    new_entries = []
    for index, req in enumerate(requests, start=1):
        current_item = current.item_for(req.product_id, req.batch_id)
        if current_item is None:
            # live bill lost the line; refund at the pristine price
            current_item = pristine.item_for(req.product_id, req.batch_id)
        refund_per_unit = current_item.effective_price_paid_per_unit
        entry_id = f"{return_transaction_id}-{index}"
        if entry_id in taken_ids:
            raise ReturnValidationError(f"Return entry id {entry_id} is already on this bill")
        new_entries.append(
            ReturnLogEntry(
                id=entry_id,
                product_id=req.product_id,
                batch_id=req.batch_id,
                quantity=req.quantity,
                refund_per_unit=refund_per_unit,
                total_refund=refund_per_unit * Decimal(req.quantity),
                return_transaction_id=return_transaction_id,
                returned_at=returned_at,
            )
        )

    merged_log = current_log + tuple(new_entries)

    bill = rebuild_adjusted_bill(
        pristine=pristine,
        log=merged_log,
        campaign=campaign,
        catalog=catalog,
        amount_paid=current.amount_paid_by_customer,
        sale_record_id=active.sale_record_id if active is not None else None,
    )
    return ReturnOutcome(bill=bill, new_entries=tuple(new_entries))
