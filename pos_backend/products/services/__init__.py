from .catalog import build_catalog
from .stock_fifo import InsufficientStockError, deduct_stock
from .stock_returns import StockReversalError, restock_returned_items, reverse_restock

__all__ = [
    "build_catalog",
    "deduct_stock",
    "InsufficientStockError",
    "StockReversalError",
    "restock_returned_items",
    "reverse_restock",
]
