# products/services/catalog.py

"""
CATALOG SNAPSHOT

Builds the read-only product/batch catalog handed to the discount engine.

- Keys are product ids as strings
- batch_prices only carries batches that define their own selling_price
- Inactive products stay in the snapshot (a returned bill may reference them)
"""

from __future__ import annotations

from typing import Iterable

from discounts.engine.types import CatalogEntry
from products.models import Product


def catalog_entry_for(product: Product) -> CatalogEntry:
    batch_prices = {
        str(batch.id): batch.selling_price
        for batch in product.stock_batches.all()
        if batch.selling_price is not None
    }
    return CatalogEntry(
        product_id=str(product.id),
        name=product.name,
        selling_price=product.unit_price,
        batch_prices=batch_prices,
        tax_rate=product.tax_rate,
        is_service=product.is_service,
    )


def build_catalog(product_ids: Iterable) -> dict[str, CatalogEntry]:
    ids = {str(pid) for pid in product_ids if pid}
    if not ids:
        return {}

    products = Product.objects.filter(id__in=ids).prefetch_related("stock_batches")
    return {str(p.id): catalog_entry_for(p) for p in products}
