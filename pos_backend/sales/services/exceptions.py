# sales/services/exceptions.py

"""
SALES DOMAIN ERRORS

Raised BEFORE any write; transactional services let them propagate out of
transaction.atomic so nothing partial is committed.

- ReturnValidationError / PaymentValidationError also subclass Django's
  ValidationError, so form/API layers can treat them like any other input
  validation failure.
- ConsistencyWarning is never raised: undo reports it in its result after
  logging it on the "sales.stock" logger.
"""

from django.core.exceptions import ValidationError


# ============================================================
# RETURNS
# ============================================================

class ReturnError(Exception):
    pass


class ReturnValidationError(ReturnError, ValidationError):
    """Return / undo request violates a quantity or identity rule."""


class ReturnEntryNotFoundError(ReturnValidationError):
    pass


class AlreadyUndoneError(ReturnError):
    pass


class SaleRecordNotFoundError(ReturnError):
    pass


# ============================================================
# SALE COMMIT
# ============================================================

class SaleCommitError(Exception):
    pass


class SaleValidationError(SaleCommitError, ValidationError):
    pass


# ============================================================
# CREDIT
# ============================================================

class CreditPaymentError(Exception):
    pass


class PaymentValidationError(CreditPaymentError, ValidationError):
    pass


# ============================================================
# WARNINGS
# ============================================================

class ConsistencyWarning(UserWarning):
    """Stock could not be reversed for an undone return; the undo still completed."""

    def __init__(self, message, *, product_id=None, batch_id=None, quantity=0):
        super().__init__(message)
        self.product_id = product_id
        self.batch_id = batch_id
        self.quantity = quantity
