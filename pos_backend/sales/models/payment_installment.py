# sales/models/payment_installment.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class PaymentInstallment(models.Model):
    """
    One payment against a credit sale.

    RULES:
    - Write-once (no updates, no deletes)
    - Amount validated against the outstanding balance by
      sales/services/credit_payment_service.py
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale_record = models.ForeignKey(
        "sales.SaleRecord",
        on_delete=models.PROTECT,
        related_name="payment_installments",
    )

    amount_paid = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=32)
    notes = models.CharField(max_length=255, blank=True, default="")

    paid_at = models.DateTimeField(default=timezone.now)

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_installments",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["paid_at"]
        indexes = [
            models.Index(fields=["sale_record", "paid_at"], name="installment_sale_paid_idx"),
        ]

    def clean(self):
        if self.amount_paid is None or self.amount_paid <= Decimal("0.00"):
            raise ValidationError({"amount_paid": "amount_paid must be greater than zero"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("PaymentInstallment records are immutable")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("PaymentInstallment records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.sale_record_id} | {self.method} | {self.amount_paid}"
