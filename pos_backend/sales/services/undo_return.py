# sales/services/undo_return.py

"""
UNDO RETURN COORDINATOR (PURE)

Reverses ONE return log entry on the live bill.

GUARANTEES:
- Unknown entry id -> ReturnEntryNotFoundError (a ReturnValidationError)
- Entry already undone -> AlreadyUndoneError
- Id matching more than one entry -> ReturnValidationError (nothing undone)
- The entry is marked undone in place; log order and length never change
- No active entries left -> the bill collapses to the pristine original
  (identical lines and totals, COMPLETED_ORIGINAL, empty return log)
- Otherwise the adjusted bill is rebuilt from the pristine original

Stock is NOT touched here (see sales/services/return_orchestrator.py).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Mapping

from discounts.engine.types import CatalogEntry, DiscountCampaign
from sales.services.bill_snapshot import (
    STATUS_COMPLETED_ORIGINAL,
    BillSnapshot,
    ReturnLogEntry,
    active_entries,
)
from sales.services.credit import derive_credit_state
from sales.services.exceptions import (
    AlreadyUndoneError,
    ReturnEntryNotFoundError,
    ReturnValidationError,
)
from sales.services.return_recalculation import rebuild_adjusted_bill


@dataclass(frozen=True)
class UndoOutcome:
    bill: BillSnapshot
    undone_entry: ReturnLogEntry
    # Full log including the undone entry; retained even after a collapse
    return_log: tuple[ReturnLogEntry, ...]
    collapsed: bool


def mark_entry_undone(
    log: tuple[ReturnLogEntry, ...],
    entry_id: str,
    *,
    undone_at: datetime | None = None,
) -> tuple[tuple[ReturnLogEntry, ...], ReturnLogEntry]:
    positions = [i for i, entry in enumerate(log) if entry.id == entry_id]
    if not positions:
        raise ReturnEntryNotFoundError(f"Return entry {entry_id} not found on this bill")
    if len(positions) > 1:
        raise ReturnValidationError(
            f"Return entry id {entry_id} is ambiguous ({len(positions)} entries on this bill)"
        )

    index = positions[0]
    if log[index].is_undone:
        raise AlreadyUndoneError(f"Return entry {entry_id} has already been undone")

    target = log[index].mark_undone(undone_at=undone_at)
    return log[:index] + (target,) + log[index + 1 :], target


def collapse_to_pristine(pristine: BillSnapshot, *, amount_paid) -> BillSnapshot:
    """Pristine bill, with credit state re-derived from what has been paid so far."""
    bill = replace(pristine, status=STATUS_COMPLETED_ORIGINAL, return_log=())
    if not pristine.is_credit_sale:
        return bill

    state = derive_credit_state(
        total=pristine.total_amount,
        amount_paid=amount_paid,
        has_active_returns=False,
    )
    return replace(
        bill,
        amount_paid_by_customer=amount_paid,
        credit_outstanding_amount=state.outstanding,
        credit_payment_status=state.status,
    )


def undo_return(
    *,
    pristine: BillSnapshot,
    active: BillSnapshot,
    entry_id: str,
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
    undone_at: datetime | None = None,
) -> UndoOutcome:
    log, undone = mark_entry_undone(tuple(active.return_log), entry_id, undone_at=undone_at)

    if not active_entries(log):
        return UndoOutcome(
            bill=collapse_to_pristine(pristine, amount_paid=active.amount_paid_by_customer),
            undone_entry=undone,
            return_log=log,
            collapsed=True,
        )

    bill = rebuild_adjusted_bill(
        pristine=pristine,
        log=log,
        campaign=campaign,
        catalog=catalog,
        amount_paid=active.amount_paid_by_customer,
        sale_record_id=active.sale_record_id,
    )
    return UndoOutcome(bill=bill, undone_entry=undone, return_log=log, collapsed=False)
