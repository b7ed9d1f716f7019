# sales/services/return_orchestrator.py

"""
RETURN ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- process_return(): apply item returns to a bill, re-price it, restock.
- undo_return_item(): reverse one return entry, re-price or collapse,
  take the restocked units back off the shelf.

GUARANTEES:
- Pricing is delegated to the pure engines
  (sales/services/return_recalculation.py, sales/services/undo_return.py)
- Bill rows are locked (select_for_update), pristine row first, for the
  whole operation; concurrent writers on one bill serialize on them
- Bill write + stock movements commit together or roll back together
- A stock reversal that cannot be applied does NOT fail an undo: it is
  logged on the "sales.stock" logger and reported as a ConsistencyWarning

One adjustment row per pristine sale. It is created by the first return and
kept afterwards, so the return history survives a collapse.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from discounts.services.campaign_snapshot import load_campaign_by_id
from products.models import Product
from products.services.catalog import build_catalog
from products.services.stock_returns import (
    StockReversalError,
    restock_returned_items,
    reverse_restock,
)
from sales.models import SaleRecord
from sales.services.bill_snapshot import (
    STATUS_ADJUSTED_ACTIVE,
    STATUS_COMPLETED_ORIGINAL,
    active_entries,
)
from sales.services.exceptions import (
    ConsistencyWarning,
    ReturnEntryNotFoundError,
    ReturnValidationError,
    SaleRecordNotFoundError,
)
from sales.services.record_mapping import apply_snapshot, snapshot_from_record
from sales.services.return_recalculation import ReturnRequest, recalculate_return
from sales.services.sale_lifecycle import validate_transition
from sales.services.undo_return import UndoOutcome, undo_return

logger = logging.getLogger(__name__)
stock_logger = logging.getLogger("sales.stock")


@dataclass(frozen=True)
class UndoResult:
    record: SaleRecord
    outcome: UndoOutcome
    warnings: tuple[ConsistencyWarning, ...] = ()


def _lock_bill(sale_record_id) -> tuple[SaleRecord, SaleRecord | None]:
    """
    Lock and return (pristine, adjustment-or-None) for any record of a bill.

    LOCK ORDER: pristine row first, then the adjustment row, whichever id
    the caller passed.
    """
    row = (
        SaleRecord.objects.filter(id=sale_record_id)
        .values_list("id", "original_sale_record_id")
        .first()
    )
    if row is None:
        raise SaleRecordNotFoundError(f"Sale record {sale_record_id} not found")

    record_id, original_id = row
    pristine = SaleRecord.objects.select_for_update().get(id=original_id or record_id)

    adjustment = (
        SaleRecord.objects.select_for_update()
        .filter(original_sale_record=pristine)
        .first()
    )
    return pristine, adjustment


def _parse_requests(items) -> list[ReturnRequest]:
    requests = []
    for raw in items or []:
        product_id = str(raw.get("product_id") or "").strip()
        if not product_id:
            raise ReturnValidationError("Each returned item needs a product_id")
        batch_id = raw.get("batch_id")
        requests.append(
            ReturnRequest(
                product_id=product_id,
                batch_id=str(batch_id) if batch_id else None,
                quantity=raw.get("quantity"),
            )
        )
    if not requests:
        raise ReturnValidationError("Nothing to return")
    return requests


def _pricing_inputs(pristine_snapshot):
    campaign = load_campaign_by_id(pristine_snapshot.active_discount_set_id)
    catalog = build_catalog(item.product_id for item in pristine_snapshot.items)
    return campaign, catalog


# ============================================================
# PROCESS RETURN
# ============================================================

@transaction.atomic
def process_return(
    *,
    sale_record_id,
    items,
    user=None,
    return_transaction_id: str | None = None,
) -> SaleRecord:
    """
    Returns the adjustment SaleRecord (ADJUSTED_ACTIVE).

    FLOW:
    1) Lock bill rows
    2) Re-price from the pristine original (validation first)
    3) Lifecycle check
    4) Write adjustment row
    5) Restock returned units
    """
    pristine, adjustment = _lock_bill(sale_record_id)
    requests = _parse_requests(items)

    pristine_snapshot = snapshot_from_record(pristine)
    active_snapshot = snapshot_from_record(adjustment) if adjustment is not None else None
    campaign, catalog = _pricing_inputs(pristine_snapshot)

    now = timezone.now()
    outcome = recalculate_return(
        pristine=pristine_snapshot,
        active=active_snapshot,
        requests=requests,
        campaign=campaign,
        catalog=catalog,
        return_transaction_id=return_transaction_id or uuid.uuid4().hex,
        returned_at=now,
    )

    validate_transition(
        from_status=adjustment.status if adjustment is not None else STATUS_COMPLETED_ORIGINAL,
        to_status=STATUS_ADJUSTED_ACTIVE,
        active_returns=len(outcome.bill.active_return_entries),
        label=f"Bill {pristine.bill_number}",
    )

    if adjustment is None:
        adjustment = SaleRecord(
            original_sale_record=pristine,
            created_by=user,
            payment_method=pristine.payment_method,
            credit_last_payment_date=pristine.credit_last_payment_date,
        )

    apply_snapshot(adjustment, outcome.bill)
    adjustment.date = now
    adjustment.save()

    products = {
        str(p.id): p
        for p in Product.objects.filter(id__in={e.product_id for e in outcome.new_entries})
    }
    for entry in outcome.new_entries:
        product = products.get(entry.product_id)
        if product is None:
            raise ReturnValidationError(f"Product {entry.product_id} no longer exists")
        restock_returned_items(
            product=product,
            quantity=entry.quantity,
            batch_id=entry.batch_id,
            sale_record=adjustment,
            user=user,
        )

    logger.info(
        "Return processed",
        extra={
            "bill_number": pristine.bill_number,
            "adjustment_id": str(adjustment.id),
            "entries": [e.id for e in outcome.new_entries],
            "total_amount": str(adjustment.total_amount),
        },
    )
    return adjustment


# ============================================================
# UNDO RETURN
# ============================================================

def _reverse_stock(*, entry, sale_record, user) -> ConsistencyWarning | None:
    product = Product.objects.filter(id=entry.product_id).first()
    try:
        if product is None:
            raise StockReversalError(f"Product {entry.product_id} no longer exists")
        reverse_restock(
            product=product,
            quantity=entry.quantity,
            batch_id=entry.batch_id,
            sale_record=sale_record,
            user=user,
        )
    except StockReversalError as exc:
        stock_logger.warning(
            "Could not reverse restock for undone return; stock may be inconsistent",
            extra={
                "product_id": entry.product_id,
                "batch_id": entry.batch_id,
                "quantity": entry.quantity,
                "return_entry_id": entry.id,
                "error": str(exc),
            },
        )
        return ConsistencyWarning(
            str(exc),
            product_id=entry.product_id,
            batch_id=entry.batch_id,
            quantity=entry.quantity,
        )
    return None


@transaction.atomic
def undo_return_item(*, master_sale_record_id, return_entry_id: str, user=None) -> UndoResult:
    """
    FLOW:
    1) Lock bill rows
    2) Mark entry undone + re-price or collapse (pure)
    3) Lifecycle check
    4) Write adjustment row (full log retained)
    5) Reverse the restock (warning only on failure)
    """
    pristine, adjustment = _lock_bill(master_sale_record_id)
    if adjustment is None:
        raise ReturnEntryNotFoundError(f"Return entry {return_entry_id} not found on this bill")

    pristine_snapshot = snapshot_from_record(pristine)
    active_snapshot = snapshot_from_record(adjustment)
    campaign, catalog = _pricing_inputs(pristine_snapshot)

    now = timezone.now()
    outcome = undo_return(
        pristine=pristine_snapshot,
        active=active_snapshot,
        entry_id=return_entry_id,
        campaign=campaign,
        catalog=catalog,
        undone_at=now,
    )

    validate_transition(
        from_status=adjustment.status,
        to_status=STATUS_COMPLETED_ORIGINAL if outcome.collapsed else STATUS_ADJUSTED_ACTIVE,
        active_returns=len(active_entries(outcome.return_log)),
        label=f"Bill {pristine.bill_number}",
    )

    apply_snapshot(adjustment, outcome.bill, return_log=outcome.return_log)
    adjustment.date = pristine.date if outcome.collapsed else now
    adjustment.save()

    warning = _reverse_stock(entry=outcome.undone_entry, sale_record=adjustment, user=user)

    logger.info(
        "Return undone",
        extra={
            "bill_number": pristine.bill_number,
            "return_entry_id": return_entry_id,
            "collapsed": outcome.collapsed,
            "total_amount": str(adjustment.total_amount),
        },
    )
    return UndoResult(
        record=adjustment,
        outcome=outcome,
        warnings=(warning,) if warning is not None else (),
    )
