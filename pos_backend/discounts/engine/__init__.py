# discounts/engine/__init__.py

from discounts.engine.exceptions import ConfigurationError, DiscountEngineError
from discounts.engine.orchestrator import compute
from discounts.engine.types import (
    AppliedRuleRecord,
    BuyGetRule,
    CatalogEntry,
    DiscountCampaign,
    DiscountComputation,
    DiscountKind,
    DiscountRuleConfig,
    LineDiscount,
    ManualOverride,
    ProductDiscountConfiguration,
    RuleContext,
    RuleType,
    SaleLine,
)

__all__ = [
    "AppliedRuleRecord",
    "BuyGetRule",
    "CatalogEntry",
    "ConfigurationError",
    "DiscountCampaign",
    "DiscountComputation",
    "DiscountEngineError",
    "DiscountKind",
    "DiscountRuleConfig",
    "LineDiscount",
    "ManualOverride",
    "ProductDiscountConfiguration",
    "RuleContext",
    "RuleType",
    "SaleLine",
    "compute",
]
