# sales/services/bill_snapshot.py

"""
BILL SNAPSHOT VALUES (PURE)

Immutable in-memory shapes of a SaleRecord:
- SaleRecordItem: frozen line snapshot (one per product+batch line)
- ReturnLogEntry: one returned quantity; append-only, undo flips is_undone
- BillSnapshot: a whole bill (pristine or adjusted)

to_json / from_json define the JSON layout stored in SaleRecord.items and
SaleRecord.returned_items_log. Money is written as 2dp strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from discounts.engine.types import (
    ZERO,
    AppliedRuleRecord,
    DiscountKind,
    ManualOverride,
    RuleType,
)

STATUS_COMPLETED_ORIGINAL = "COMPLETED_ORIGINAL"
STATUS_ADJUSTED_ACTIVE = "ADJUSTED_ACTIVE"

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _dec(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def line_key(product_id: str, batch_id: str | None) -> tuple[str, str | None]:
    return (str(product_id), str(batch_id) if batch_id else None)


# ============================================================
# LINE SNAPSHOT
# ============================================================

@dataclass(frozen=True)
class SaleRecordItem:
    product_id: str
    name: str
    quantity: int
    price_at_sale: Decimal
    effective_price_paid_per_unit: Decimal
    total_discount_on_line: Decimal = ZERO
    tax_amount: Decimal = ZERO
    batch_id: str | None = None
    manual_override: ManualOverride | None = None

    @property
    def key(self) -> tuple[str, str | None]:
        return line_key(self.product_id, self.batch_id)

    def to_json(self) -> dict:
        data = {
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "name": self.name,
            "quantity": self.quantity,
            "price_at_sale": str(_money(self.price_at_sale)),
            "effective_price_paid_per_unit": str(_money(self.effective_price_paid_per_unit)),
            "total_discount_on_line": str(_money(self.total_discount_on_line)),
            "tax_amount": str(_money(self.tax_amount)),
        }
        if self.manual_override is not None:
            data["manual_override"] = {
                "kind": self.manual_override.kind.value,
                "value": str(self.manual_override.value),
                "apply_once": self.manual_override.apply_once,
            }
        return data

    @classmethod
    def from_json(cls, data: dict) -> "SaleRecordItem":
        override = None
        raw_override = data.get("manual_override")
        if raw_override:
            override = ManualOverride(
                kind=DiscountKind(raw_override["kind"]),
                value=Decimal(str(raw_override["value"])),
                apply_once=bool(raw_override.get("apply_once", False)),
            )
        return cls(
            product_id=str(data["product_id"]),
            batch_id=str(data["batch_id"]) if data.get("batch_id") else None,
            name=data.get("name") or "",
            quantity=int(data["quantity"]),
            price_at_sale=_dec(data.get("price_at_sale")),
            effective_price_paid_per_unit=_dec(data.get("effective_price_paid_per_unit")),
            total_discount_on_line=_dec(data.get("total_discount_on_line")),
            tax_amount=_dec(data.get("tax_amount")),
            manual_override=override,
        )


# ============================================================
# RETURN LOG
# ============================================================

@dataclass(frozen=True)
class ReturnLogEntry:
    id: str
    product_id: str
    quantity: int
    refund_per_unit: Decimal
    total_refund: Decimal
    return_transaction_id: str
    batch_id: str | None = None
    is_undone: bool = False
    returned_at: datetime | None = None
    undone_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str | None]:
        return line_key(self.product_id, self.batch_id)

    def mark_undone(self, *, undone_at: datetime | None = None) -> "ReturnLogEntry":
        return replace(self, is_undone=True, undone_at=undone_at)

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "refund_per_unit": str(_money(self.refund_per_unit)),
            "total_refund": str(_money(self.total_refund)),
            "return_transaction_id": self.return_transaction_id,
            "is_undone": self.is_undone,
            "returned_at": _iso(self.returned_at),
            "undone_at": _iso(self.undone_at),
        }

    @classmethod
    def from_json(cls, data: dict) -> "ReturnLogEntry":
        return cls(
            id=str(data["id"]),
            product_id=str(data["product_id"]),
            batch_id=str(data["batch_id"]) if data.get("batch_id") else None,
            quantity=int(data["quantity"]),
            refund_per_unit=_dec(data.get("refund_per_unit")),
            total_refund=_dec(data.get("total_refund")),
            return_transaction_id=str(data.get("return_transaction_id") or ""),
            is_undone=bool(data.get("is_undone", False)),
            returned_at=_parse_dt(data.get("returned_at")),
            undone_at=_parse_dt(data.get("undone_at")),
        )


def active_entries(log) -> tuple[ReturnLogEntry, ...]:
    return tuple(entry for entry in log if not entry.is_undone)


# ============================================================
# APPLIED RULE SUMMARY
# ============================================================

def applied_rule_to_json(record: AppliedRuleRecord) -> dict:
    return {
        "campaign_name": record.campaign_name,
        "rule_name": record.rule_name,
        "rule_type": record.rule_type.value,
        "amount": str(_money(record.amount)),
        "affected_product_id": record.affected_product_id,
        "applied_once": record.applied_once,
    }


def applied_rule_from_json(data: dict) -> AppliedRuleRecord:
    return AppliedRuleRecord(
        campaign_name=data.get("campaign_name") or "",
        rule_name=data.get("rule_name") or "",
        rule_type=RuleType(data["rule_type"]),
        amount=_dec(data.get("amount")),
        affected_product_id=data.get("affected_product_id"),
        applied_once=bool(data.get("applied_once", False)),
    )


# ============================================================
# BILL
# ============================================================

@dataclass(frozen=True)
class BillSnapshot:
    bill_number: str
    status: str
    items: tuple[SaleRecordItem, ...]
    subtotal_original: Decimal
    total_item_discount_amount: Decimal
    total_cart_discount_amount: Decimal
    net_subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    applied_discount_summary: tuple[AppliedRuleRecord, ...] = ()
    active_discount_set_id: str | None = None
    return_log: tuple[ReturnLogEntry, ...] = field(default_factory=tuple)
    sale_record_id: str | None = None
    original_sale_record_id: str | None = None
    is_credit_sale: bool = False
    amount_paid_by_customer: Decimal = ZERO
    credit_outstanding_amount: Decimal | None = None
    credit_payment_status: str | None = None

    def item_for(self, product_id: str, batch_id: str | None) -> SaleRecordItem | None:
        key = line_key(product_id, batch_id)
        for item in self.items:
            if item.key == key:
                return item
        return None

    @property
    def active_return_entries(self) -> tuple[ReturnLogEntry, ...]:
        return active_entries(self.return_log)
