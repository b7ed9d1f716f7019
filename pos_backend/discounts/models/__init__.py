from .discount_set import DiscountSet
from .product_configuration import ProductDiscountConfiguration

__all__ = [
    "DiscountSet",
    "ProductDiscountConfiguration",
]
