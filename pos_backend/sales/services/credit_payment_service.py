# sales/services/credit_payment_service.py

"""
CREDIT PAYMENT SERVICE

Records an installment against a credit sale.

GUARANTEES:
- Runs on the LIVE record (adjustment row if the bill was ever returned
  against, else the pristine row), locked with select_for_update
- Amount must be > 0 and may not exceed the outstanding balance (+0.001)
- Installment row + balance update commit together
- Pristine row keeps its credit fields in step while it is the live record
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from sales.models import PaymentInstallment, SaleRecord
from sales.services.bill_snapshot import _money
from sales.services.credit import FULLY_PAID, apply_credit_payment
from sales.services.exceptions import PaymentValidationError, SaleRecordNotFoundError

logger = logging.getLogger("payments")


def _lock_live_record(sale_record_id) -> SaleRecord:
    """Lock the bill (pristine row first) and return its live record."""
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
    return adjustment if adjustment is not None else pristine


@transaction.atomic
def record_credit_payment(
    *,
    sale_record_id,
    amount,
    method: str = SaleRecord.PAYMENT_CASH,
    user=None,
    notes: str = "",
) -> PaymentInstallment:
    record = _lock_live_record(sale_record_id)

    if not record.is_credit_sale:
        raise PaymentValidationError(f"Bill {record.bill_number} is not a credit sale")

    if record.credit_payment_status == FULLY_PAID:
        raise PaymentValidationError(f"Bill {record.bill_number} is already fully paid")

    state = apply_credit_payment(
        outstanding=record.credit_outstanding_amount,
        amount=amount,
    )
    paid = _money(amount)
    now = timezone.now()

    installment = PaymentInstallment.objects.create(
        sale_record=record,
        amount_paid=paid,
        method=(method or SaleRecord.PAYMENT_CASH).strip().lower(),
        notes=notes or "",
        paid_at=now,
        recorded_by=user,
    )

    record.amount_paid_by_customer = _money(record.amount_paid_by_customer) + paid
    record.credit_outstanding_amount = _money(state.outstanding)
    record.credit_payment_status = state.status
    record.credit_last_payment_date = now
    record.save(
        update_fields=[
            "amount_paid_by_customer",
            "credit_outstanding_amount",
            "credit_payment_status",
            "credit_last_payment_date",
            "updated_at",
        ]
    )

    logger.info(
        "Credit installment recorded",
        extra={
            "bill_number": record.bill_number,
            "sale_record_id": str(record.id),
            "amount": str(paid),
            "outstanding": str(record.credit_outstanding_amount),
            "status": record.credit_payment_status,
        },
    )
    return installment
