# sales/services/sale_service.py

"""
SALE SERVICE (APPLICATION SERVICE)

Purpose:
- commit_sale(): price a cart and persist the PRISTINE SaleRecord, deducting
  stock in the same transaction.
- get_sale_context(): pristine + live record for a bill number.

Hard rules:
- Quantities are integer units.
- Prices come from the catalog (batch price > product price); callers never
  send totals.
- Stock deduction + record write succeed together or roll back together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction

from discounts.engine.exceptions import ConfigurationError
from discounts.engine.types import DiscountKind, ManualOverride, SaleLine
from discounts.models import DiscountSet
from discounts.services.campaign_snapshot import load_campaign
from products.models import Product
from products.services.catalog import build_catalog
from products.services.stock_fifo import deduct_stock
from sales.models import SaleRecord
from sales.services.bill_snapshot import (
    STATUS_COMPLETED_ORIGINAL,
    BillSnapshot,
    ReturnLogEntry,
    _money,
)
from sales.services.billing import build_bill
from sales.services.credit import derive_credit_state
from sales.services.exceptions import SaleRecordNotFoundError, SaleValidationError
from sales.services.record_mapping import apply_snapshot

logger = logging.getLogger(__name__)


def _to_int_qty(value) -> int:
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise SaleValidationError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise SaleValidationError("quantity must be a whole integer unit")


def _normalize_payment_method(method: str | None) -> str:
    m = (method or SaleRecord.PAYMENT_CASH).strip().lower()
    valid = {choice for choice, _ in SaleRecord.PAYMENT_CHOICES}
    if m not in valid:
        raise SaleValidationError(f"Unsupported payment method: {method}")
    return m


def _default_tax_rate() -> Decimal:
    return Decimal(str(getattr(settings, "POS_DEFAULT_TAX_RATE", "0")))


def _parse_override(raw) -> ManualOverride | None:
    if not raw:
        return None
    if isinstance(raw, ManualOverride):
        return raw
    try:
        return ManualOverride(
            kind=DiscountKind(str(raw.get("kind") or raw.get("type") or "").lower()),
            value=raw.get("value"),
            apply_once=bool(raw.get("apply_once", False)),
        )
    except (ValueError, ConfigurationError) as exc:
        raise SaleValidationError(f"Invalid manual override: {exc}") from exc


def _parse_lines(lines) -> list[dict]:
    parsed = []
    seen = set()
    for raw in lines or []:
        product_id = str(raw.get("product_id") or "").strip()
        if not product_id:
            raise SaleValidationError("Each line needs a product_id")

        qty = _to_int_qty(raw.get("quantity"))
        if qty <= 0:
            raise SaleValidationError(f"Quantity for product {product_id} must be at least 1")

        batch_id = raw.get("batch_id")
        batch_id = str(batch_id) if batch_id else None

        key = (product_id, batch_id)
        if key in seen:
            raise SaleValidationError(
                f"Product {product_id} appears twice for the same batch; merge the lines"
            )
        seen.add(key)

        parsed.append(
            {
                "product_id": product_id,
                "batch_id": batch_id,
                "quantity": qty,
                "manual_override": _parse_override(raw.get("manual_override")),
            }
        )

    if not parsed:
        raise SaleValidationError("A sale needs at least one line")
    return parsed


# ============================================================
# COMMIT
# ============================================================

@transaction.atomic
def commit_sale(
    *,
    lines,
    discount_set_id=None,
    tax_rate=None,
    payment_method: str | None = None,
    amount_paid=None,
    user=None,
    bill_number: str | None = None,
) -> SaleRecord:
    """
    Price and persist a new sale.

    FLOW:
    1) Validate lines + products
    2) Resolve catalog + campaign snapshot
    3) Build the bill (shared calculator)
    4) Payment / credit state
    5) Persist pristine SaleRecord
    6) Deduct stock per line (services skipped)
    """
    parsed = _parse_lines(lines)
    method = _normalize_payment_method(payment_method)

    product_ids = {line["product_id"] for line in parsed}
    products = {str(p.id): p for p in Product.objects.filter(id__in=product_ids)}
    for pid in product_ids:
        product = products.get(pid)
        if product is None:
            raise SaleValidationError(f"Product {pid} does not exist")
        if not product.is_active:
            raise SaleValidationError(f"Product {product.name} is not active")

    catalog = build_catalog(product_ids)

    discount_set = None
    if discount_set_id:
        discount_set = (
            DiscountSet.objects.prefetch_related("product_configurations")
            .filter(id=discount_set_id)
            .first()
        )
        if discount_set is None:
            raise SaleValidationError(f"Discount set {discount_set_id} does not exist")
    campaign = load_campaign(discount_set)

    try:
        rate = Decimal(str(tax_rate)) if tax_rate is not None else _default_tax_rate()
    except (InvalidOperation, ValueError) as exc:
        raise SaleValidationError("tax_rate must be a decimal fraction") from exc
    if rate < Decimal("0") or rate > Decimal("1"):
        raise SaleValidationError("tax_rate must be between 0 and 1")

    sale_lines = [
        SaleLine(
            product_id=line["product_id"],
            unit_price=catalog[line["product_id"]].price_for(line["batch_id"]),
            quantity=line["quantity"],
            batch_id=line["batch_id"],
            manual_override=line["manual_override"],
        )
        for line in parsed
    ]

    totals = build_bill(sale_lines, campaign=campaign, catalog=catalog, tax_rate=rate)
    total_due = _money(totals.total_amount)

    is_credit = method == SaleRecord.PAYMENT_CREDIT
    if is_credit:
        paid = _money(amount_paid) if amount_paid is not None else Decimal("0.00")
        if paid < Decimal("0.00"):
            raise SaleValidationError("amount_paid cannot be negative")
        state = derive_credit_state(total=total_due, amount_paid=paid)
        change_due = Decimal("0.00")
    else:
        paid = _money(amount_paid) if amount_paid is not None else total_due
        if paid < total_due:
            raise SaleValidationError(
                f"Amount paid ({paid}) is less than the total due ({total_due})"
            )
        state = None
        change_due = paid - total_due

    bill = BillSnapshot(
        bill_number=bill_number or "",
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
        active_discount_set_id=str(discount_set.id) if discount_set else None,
        is_credit_sale=is_credit,
        amount_paid_by_customer=paid,
        credit_outstanding_amount=state.outstanding if state else None,
        credit_payment_status=state.status if state else None,
    )

    record = apply_snapshot(SaleRecord(created_by=user), bill)
    record.payment_method = method
    record.change_due = change_due
    if is_credit and paid > Decimal("0.00"):
        record.credit_last_payment_date = record.date
    record.save()

    for line in sale_lines:
        if products[line.product_id].is_service:
            continue
        deduct_stock(
            product=products[line.product_id],
            quantity=line.quantity,
            batch_id=line.batch_id,
            sale_record=record,
            user=user,
        )

    logger.info(
        "Sale committed",
        extra={
            "sale_record_id": str(record.id),
            "bill_number": record.bill_number,
            "total_amount": str(record.total_amount),
            "discount_set_id": bill.active_discount_set_id,
        },
    )
    return record


# ============================================================
# CONTEXT
# ============================================================

@dataclass(frozen=True)
class SaleContext:
    pristine: SaleRecord
    active: SaleRecord
    return_log: tuple[ReturnLogEntry, ...]

    @property
    def has_active_returns(self) -> bool:
        return any(not entry.is_undone for entry in self.return_log)


def get_sale_context(bill_number: str) -> SaleContext:
    """
    Pristine original + the live record for a bill.

    The live record is the adjustment row once a return has ever happened
    (it keeps the return history even after collapsing back), else the
    pristine row itself.
    """
    pristine = (
        SaleRecord.objects.filter(
            bill_number=bill_number,
            original_sale_record__isnull=True,
        )
        .select_related("active_discount_set")
        .first()
    )
    if pristine is None:
        raise SaleRecordNotFoundError(f"No original sale record found for bill number: {bill_number}")

    active = SaleRecord.objects.filter(original_sale_record=pristine).first() or pristine

    return SaleContext(
        pristine=pristine,
        active=active,
        return_log=tuple(
            ReturnLogEntry.from_json(e) for e in (active.returned_items_log or [])
        ),
    )
