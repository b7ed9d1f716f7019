# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .payment_installment import PaymentInstallment
from .sale_record import SaleRecord

__all__ = [
    "PaymentInstallment",
    "SaleRecord",
]
