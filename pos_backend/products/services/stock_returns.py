# products/services/stock_returns.py

"""
RETURN STOCK SERVICE

Purpose:
- RESTOCK returned units (return processing).
- REVERSE a restock (undo of a return).

Batch resolution:
- Entry carries a batch id -> that batch.
- No batch id (or the batch no longer exists on restock) -> the product's
  returned-stock batch (batch_number = settings.POS_RETURNED_STOCK_BATCH),
  created on first use.

This service raises on failure. Whether a failed reversal is fatal is the
caller's decision (the undo flow logs it and continues).
"""

from __future__ import annotations

from django.conf import settings
from django.db import transaction

from products.models import StockBatch, StockMovement
from products.services.stock_fifo import InsufficientStockError, _record_movement, _to_int_qty


# ============================================================
# DOMAIN ERRORS
# ============================================================

class StockReversalError(InsufficientStockError):
    """Raised when a batch cannot absorb the reversal of a restock."""


def _returned_stock_batch_number() -> str:
    return getattr(settings, "POS_RETURNED_STOCK_BATCH", "RETURNED_STOCK")


def _lock_batch(*, product, batch_id):
    if batch_id is not None:
        return (
            StockBatch.objects.select_for_update()
            .filter(id=batch_id, product=product)
            .first()
        )
    return (
        StockBatch.objects.select_for_update()
        .filter(product=product, batch_number=_returned_stock_batch_number())
        .first()
    )


@transaction.atomic
def restock_returned_items(*, product, quantity, sale_record, batch_id=None, user=None):
    """
    Put returned units back on the shelf. Returns the batch that received them.
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise ValueError("quantity must be greater than zero")

    if getattr(product, "is_service", False):
        return None

    batch = _lock_batch(product=product, batch_id=batch_id)
    if batch is None and batch_id is not None:
        # original batch is gone; returned units go to the returned-stock batch
        batch = _lock_batch(product=product, batch_id=None)
    if batch is None:
        batch = StockBatch.objects.create(
            product=product,
            batch_number=_returned_stock_batch_number(),
            quantity_remaining=0,
        )

    batch.quantity_remaining = int(batch.quantity_remaining or 0) + qty
    batch.save(update_fields=["quantity_remaining", "is_active"])

    _record_movement(
        batch=batch,
        quantity=qty,
        reason=StockMovement.Reason.RETURN,
        sale_record=sale_record,
        user=user,
    )
    return batch


@transaction.atomic
def reverse_restock(*, product, quantity, sale_record, batch_id=None, user=None):
    """
    Take previously restocked units back off the shelf (undo of a return).

    Raises StockReversalError when the batch is gone or holds fewer units
    than the reversal needs; nothing is written in that case.
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise ValueError("quantity must be greater than zero")

    if getattr(product, "is_service", False):
        return None

    batch = _lock_batch(product=product, batch_id=batch_id)
    if batch is None and batch_id is not None:
        batch = _lock_batch(product=product, batch_id=None)
    if batch is None:
        raise StockReversalError(
            f"No batch available to reverse restock of {qty} unit(s) "
            f"for {getattr(product, 'name', 'product')}"
        )

    available = int(batch.quantity_remaining or 0)
    if available < qty:
        raise StockReversalError(
            f"Batch {batch.batch_number} holds {available} unit(s); "
            f"cannot reverse restock of {qty}"
        )

    batch.quantity_remaining = available - qty
    batch.save(update_fields=["quantity_remaining", "is_active"])

    _record_movement(
        batch=batch,
        quantity=qty,
        reason=StockMovement.Reason.RETURN_UNDO,
        sale_record=sale_record,
        user=user,
    )
    return batch
