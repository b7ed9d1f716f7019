# products/services/stock_fifo.py

"""
FIFO STOCK ENGINE

Purpose:
- Deduct sold quantities from stock batches.
  - Line pinned to a batch -> deduct from THAT batch only.
  - Un-batched line -> FIFO across active batches (oldest first).
- Integer-only quantities (StockMovement.quantity is PositiveIntegerField).
- Every deduction writes a SALE StockMovement linked to the sale record.

Rows are locked with select_for_update; callers run inside the sale's
transaction.atomic block.
"""

from __future__ import annotations

from django.db import transaction

from products.models import StockBatch, StockMovement


# ============================================================
# DOMAIN ERRORS
# ============================================================

class InsufficientStockError(Exception):
    pass


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise ValueError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise ValueError("quantity must be a whole integer unit")


def _record_movement(*, batch, quantity, reason, sale_record, user):
    movement_type = StockMovement.REASON_TO_MOVEMENT[reason]
    return StockMovement.objects.create(
        product_id=batch.product_id,
        batch=batch,
        movement_type=movement_type,
        reason=reason,
        quantity=quantity,
        sale_record=sale_record,
        performed_by=user,
    )


def _deduct_from_batch(*, batch: StockBatch, quantity: int, sale_record, user):
    batch.quantity_remaining = int(batch.quantity_remaining or 0) - quantity
    batch.save(update_fields=["quantity_remaining", "is_active"])
    return _record_movement(
        batch=batch,
        quantity=quantity,
        reason=StockMovement.Reason.SALE,
        sale_record=sale_record,
        user=user,
    )


# ============================================================
# DEDUCTION
# ============================================================

@transaction.atomic
def deduct_stock(*, product, quantity, sale_record, batch_id=None, user=None):
    """
    Deduct `quantity` units of `product` for `sale_record`.

    Returns the created SALE movements.
    """
    if not product:
        raise ValueError("product is required")

    if sale_record is None:
        raise ValueError("sale_record is required (StockMovement requires a sale reference)")

    qty = _to_int_qty(quantity)
    if qty <= 0:
        return []

    if batch_id is not None:
        batch = (
            StockBatch.objects.select_for_update()
            .filter(id=batch_id, product=product)
            .first()
        )
        if batch is None:
            raise InsufficientStockError(
                f"Batch {batch_id} does not exist for {getattr(product, 'name', 'product')}"
            )
        available = int(batch.quantity_remaining or 0)
        if available < qty:
            raise InsufficientStockError(
                f"Insufficient stock for {getattr(product, 'name', 'product')} "
                f"(batch {batch.batch_number}). Requested: {qty}, Available: {available}"
            )
        return [_deduct_from_batch(batch=batch, quantity=qty, sale_record=sale_record, user=user)]

    batch_list = list(
        StockBatch.objects.select_for_update()
        .filter(product=product, is_active=True, quantity_remaining__gt=0)
        .order_by("created_at")
    )
    total_available = sum(int(b.quantity_remaining or 0) for b in batch_list)

    if total_available < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {getattr(product, 'name', 'product')}. "
            f"Requested: {qty}, Available: {total_available}"
        )

    remaining_qty = qty
    movements = []
    for batch in batch_list:
        if remaining_qty <= 0:
            break

        available = int(batch.quantity_remaining or 0)
        consumed = available if available <= remaining_qty else remaining_qty
        movements.append(
            _deduct_from_batch(batch=batch, quantity=consumed, sale_record=sale_record, user=user)
        )
        remaining_qty -= consumed

    return movements
