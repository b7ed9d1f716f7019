# sales/services/billing.py

"""
BILL CALCULATOR (PURE)

Shared by sale commit and return recalculation, so a pristine bill and a
re-priced bill always follow the same arithmetic.

FLOW:
1) Discount engine over the lines (campaign snapshot passed in)
2) Per line: effective price, line net, proportional cart-discount share
3) Per line tax on (line net - cart share) at
   product tax rate if set, else the bill tax rate
4) Totals: net = subtotal - item discounts - cart discounts; total = net + tax

No rounding here; amounts are quantized when persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from discounts.engine import compute
from discounts.engine.types import (
    ZERO,
    CatalogEntry,
    DiscountCampaign,
    DiscountComputation,
    SaleLine,
)
from sales.services.bill_snapshot import SaleRecordItem


@dataclass(frozen=True)
class BillTotals:
    items: tuple[SaleRecordItem, ...]
    computation: DiscountComputation
    subtotal_original: Decimal
    total_item_discount_amount: Decimal
    total_cart_discount_amount: Decimal
    net_subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def tax_rate_for(product_id: str, *, catalog: Mapping[str, CatalogEntry], bill_rate: Decimal) -> Decimal:
    entry = catalog.get(product_id)
    if entry is not None and entry.tax_rate is not None:
        return entry.tax_rate
    return bill_rate


def cart_share(
    line_net: Decimal,
    *,
    subtotal_after_items: Decimal,
    cart_discount: Decimal,
) -> Decimal:
    if subtotal_after_items <= ZERO or cart_discount <= ZERO:
        return ZERO
    return (line_net / subtotal_after_items) * cart_discount


def build_bill(
    lines: Iterable[SaleLine],
    *,
    campaign: DiscountCampaign | None,
    catalog: Mapping[str, CatalogEntry],
    tax_rate: Decimal,
    names: Mapping[str, str] | None = None,
) -> BillTotals:
    lines = tuple(lines)
    tax_rate = Decimal(str(tax_rate or 0))
    names = names or {}

    computation = compute(lines, campaign, catalog)

    subtotal = sum((line.line_value for line in lines), ZERO)
    item_total = computation.item_discount_total
    cart_total = computation.cart_discount_total
    subtotal_after_items = subtotal - item_total

    items = []
    tax_total = ZERO
    for line in lines:
        discount = computation.discount_for(line.line_id)
        line_net = line.line_value - discount

        effective = line.unit_price
        if discount > ZERO and line.quantity > 0:
            effective = max(ZERO, line.unit_price - discount / Decimal(line.quantity))

        taxable = line_net - cart_share(
            line_net,
            subtotal_after_items=subtotal_after_items,
            cart_discount=cart_total,
        )
        rate = tax_rate_for(line.product_id, catalog=catalog, bill_rate=tax_rate)
        line_tax = max(ZERO, taxable) * rate
        tax_total += line_tax

        entry = catalog.get(line.product_id)
        name = names.get(line.line_id) or (entry.name if entry is not None else line.product_id)

        items.append(
            SaleRecordItem(
                product_id=line.product_id,
                batch_id=line.batch_id,
                name=name,
                quantity=line.quantity,
                price_at_sale=line.unit_price,
                effective_price_paid_per_unit=effective,
                total_discount_on_line=discount,
                tax_amount=line_tax,
                manual_override=line.manual_override,
            )
        )

    net_subtotal = subtotal - item_total - cart_total

    return BillTotals(
        items=tuple(items),
        computation=computation,
        subtotal_original=subtotal,
        total_item_discount_amount=item_total,
        total_cart_discount_amount=cart_total,
        net_subtotal=net_subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_total,
        total_amount=net_subtotal + tax_total,
    )
