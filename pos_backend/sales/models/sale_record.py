# sales/models/sale_record.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class SaleRecord(models.Model):
    """
    A priced bill.

    TWO KINDS OF ROW (same bill_number):
    - PRISTINE ORIGINAL (original_sale_record is NULL)
      Written once at sale commit. Lines, totals and discount summary are
      immutable forever; only the credit fields move (installments).
    - ADJUSTMENT (original_sale_record -> pristine, at most one per pristine)
      The live bill once a return has happened. Re-priced on every return /
      undo. Its returned_items_log is append-only (entries are marked undone,
      never removed).

    STATUS:
    - COMPLETED_ORIGINAL: bill equals the pristine original
    - ADJUSTED_ACTIVE: bill reflects active returns
    Transitions are validated by sales/services/sale_lifecycle.py.

    Money is stored at 2dp; the engine works in exact Decimal and quantizes
    only when writing here.
    """

    STATUS_COMPLETED_ORIGINAL = "COMPLETED_ORIGINAL"
    STATUS_ADJUSTED_ACTIVE = "ADJUSTED_ACTIVE"

    STATUS_CHOICES = [
        (STATUS_COMPLETED_ORIGINAL, "Completed (original)"),
        (STATUS_ADJUSTED_ACTIVE, "Adjusted (active returns)"),
    ]

    class CreditStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PARTIALLY_PAID = "PARTIALLY_PAID", "Partially paid"
        FULLY_PAID = "FULLY_PAID", "Fully paid"

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_CREDIT = "credit"

    PAYMENT_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_CREDIT, "Credit"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill_number = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Receipt number; shared by the pristine row and its adjustment",
    )

    date = models.DateTimeField(default=timezone.now)

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED_ORIGINAL,
    )

    # Frozen line snapshots (see sales/services/bill_snapshot.py)
    items = models.JSONField(default=list, blank=True)

    subtotal_original = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_item_discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_cart_discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    net_subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    tax_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Bill tax rate as a fraction (0.0500 == 5%).",
    )
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    applied_discount_summary = models.JSONField(default=list, blank=True)

    active_discount_set = models.ForeignKey(
        "discounts.DiscountSet",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sale_records",
        help_text="Campaign that priced the sale; returns re-price with it",
    )

    payment_method = models.CharField(
        max_length=32,
        choices=PAYMENT_CHOICES,
        default=PAYMENT_CASH,
    )

    amount_paid_by_customer = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    change_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    is_credit_sale = models.BooleanField(default=False)
    credit_outstanding_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True, default=None
    )
    credit_payment_status = models.CharField(
        max_length=20,
        choices=CreditStatus.choices,
        null=True,
        blank=True,
        default=None,
    )
    credit_last_payment_date = models.DateTimeField(null=True, blank=True)

    # Append-only return log (list of ReturnLogEntry dicts; never NULL)
    returned_items_log = models.JSONField(default=list, blank=True)

    original_sale_record = models.OneToOneField(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="adjustment",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_records",
        help_text="Cashier / staff who processed the sale",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date"]
        indexes = [
            models.Index(fields=["status"], name="salerecord_status_idx"),
            models.Index(fields=["date"], name="salerecord_date_idx"),
            models.Index(fields=["is_credit_sale", "credit_payment_status"], name="salerecord_credit_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["bill_number"],
                condition=Q(original_sale_record__isnull=True),
                name="unique_pristine_bill_number",
            ),
        ]

    _IMMUTABLE_PRISTINE_FIELDS = (
        "bill_number",
        "date",
        "status",
        "items",
        "subtotal_original",
        "total_item_discount_amount",
        "total_cart_discount_amount",
        "net_subtotal",
        "tax_rate",
        "tax_amount",
        "total_amount",
        "applied_discount_summary",
        "active_discount_set_id",
        "payment_method",
        "is_credit_sale",
        "returned_items_log",
        "original_sale_record_id",
    )

    @property
    def is_pristine(self) -> bool:
        return self.original_sale_record_id is None

    def _validate_pristine_immutable(self, previous: "SaleRecord"):
        for field in self._IMMUTABLE_PRISTINE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValidationError(
                    f"Pristine sale record is immutable. Field '{field}' cannot be changed."
                )

    def clean(self):
        if not (self.bill_number or "").strip():
            raise ValidationError({"bill_number": "bill_number is required"})

        if self.returned_items_log is None:
            raise ValidationError({"returned_items_log": "returned_items_log cannot be NULL"})

        if self.is_pristine:
            if self.status != self.STATUS_COMPLETED_ORIGINAL:
                raise ValidationError({"status": "A pristine record is always COMPLETED_ORIGINAL"})
            if self.returned_items_log:
                raise ValidationError(
                    {"returned_items_log": "A pristine record never carries returns"}
                )

        if self.is_credit_sale and self.credit_payment_status is None:
            raise ValidationError({"credit_payment_status": "Credit sales need a payment status"})

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = SaleRecord.objects.filter(pk=self.pk).first()
            if previous is not None and previous.is_pristine:
                self._validate_pristine_immutable(previous)

        if not self.bill_number:
            prefix = timezone.now().strftime("BILL%Y%m%d")
            self.bill_number = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_pristine:
            raise ValidationError("Pristine sale records cannot be deleted")
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"{self.bill_number} | {self.status} | {self.total_amount}"
