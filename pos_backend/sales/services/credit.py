# sales/services/credit.py

"""
CREDIT LEDGER RULES (PURE)

- outstanding = max(0, total - paid)
- FULLY_PAID when outstanding <= 0.009 (sub-cent dust counts as paid)
- PARTIALLY_PAID when anything was paid OR returns are active
- PENDING otherwise
- An installment may overshoot the outstanding balance by at most 0.001
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sales.services.exceptions import PaymentValidationError

ZERO = Decimal("0")
FULLY_PAID_TOLERANCE = Decimal("0.009")
OVERPAYMENT_TOLERANCE = Decimal("0.001")

PENDING = "PENDING"
PARTIALLY_PAID = "PARTIALLY_PAID"
FULLY_PAID = "FULLY_PAID"


@dataclass(frozen=True)
class CreditState:
    outstanding: Decimal
    status: str


def derive_credit_state(*, total, amount_paid, has_active_returns: bool = False) -> CreditState:
    total = Decimal(str(total or 0))
    paid = Decimal(str(amount_paid or 0))
    outstanding = max(ZERO, total - paid)

    if outstanding <= FULLY_PAID_TOLERANCE:
        status = FULLY_PAID
    elif paid > ZERO or has_active_returns:
        status = PARTIALLY_PAID
    else:
        status = PENDING

    return CreditState(outstanding=outstanding, status=status)


def apply_credit_payment(*, outstanding, amount) -> CreditState:
    outstanding = Decimal(str(outstanding or 0))
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise PaymentValidationError("Payment amount must be a valid decimal") from exc

    if amount <= ZERO:
        raise PaymentValidationError("Payment amount must be greater than zero")

    if amount > outstanding + OVERPAYMENT_TOLERANCE:
        raise PaymentValidationError(
            f"Payment amount ({amount:.2f}) exceeds outstanding amount ({outstanding:.2f})"
        )

    remaining = max(ZERO, outstanding - amount)
    status = FULLY_PAID if remaining <= FULLY_PAID_TOLERANCE else PARTIALLY_PAID
    return CreditState(outstanding=remaining, status=status)
