# discounts/engine/types.py

"""
DISCOUNT ENGINE VALUE OBJECTS

Everything the engine consumes or returns is an immutable value:
- Rule configs, campaign snapshots and catalog entries are built ONCE at the
  loading boundary (see discounts/engine/loader.py) and passed by value.
- Results are new objects; nothing here is mutated after construction.

Units:
- Money / prices / rule values: Decimal
- Quantities: integer units
- Rule percentages: whole percent (Decimal("10") == 10%)
- Tax rates: fractions (Decimal("0.05") == 5%)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Mapping

from discounts.engine.exceptions import ConfigurationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

MANUAL_OVERRIDE_CAMPAIGN = "Manual Override"


def to_decimal(value, *, field_name: str = "value") -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a decimal number")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"{field_name} must be a decimal number") from exc


def _optional_decimal(value, *, field_name: str) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value, field_name=field_name)


# ============================================================
# ENUMS
# ============================================================


class DiscountKind(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class RuleContext(str, enum.Enum):
    """Which scalar of a line a rule's condition is tested against."""

    LINE_VALUE = "item_value"
    QUANTITY = "item_quantity"
    SPECIFIC_QUANTITY = "specific_qty"
    SPECIFIC_UNIT_PRICE = "specific_unit_price"


class RuleType(str, enum.Enum):
    PRODUCT_LINE_VALUE = "product_config_line_item_value"
    PRODUCT_LINE_QUANTITY = "product_config_line_item_quantity"
    PRODUCT_SPECIFIC_QUANTITY = "product_config_specific_qty_threshold"
    PRODUCT_SPECIFIC_UNIT_PRICE = "product_config_specific_unit_price"
    DEFAULT_LINE_VALUE = "campaign_default_line_item_value"
    DEFAULT_LINE_QUANTITY = "campaign_default_line_item_quantity"
    DEFAULT_SPECIFIC_QUANTITY = "campaign_default_specific_qty_threshold"
    DEFAULT_SPECIFIC_UNIT_PRICE = "campaign_default_specific_unit_price"
    GLOBAL_CART_PRICE = "campaign_global_cart_price"
    GLOBAL_CART_QUANTITY = "campaign_global_cart_quantity"
    BUY_GET = "buy_get_free"
    MANUAL_OVERRIDE = "manual_override"


# ============================================================
# RULE CONFIGS
# ============================================================


@dataclass(frozen=True)
class DiscountRuleConfig:
    name: str
    kind: DiscountKind
    value: Decimal
    condition_min: Decimal | None = None
    condition_max: Decimal | None = None
    apply_once: bool = False
    enabled: bool = True

    def __post_init__(self):
        if not isinstance(self.kind, DiscountKind):
            raise ConfigurationError(f"Unknown discount kind: {self.kind!r}")

        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(
            self,
            "condition_min",
            _optional_decimal(self.condition_min, field_name="condition_min"),
        )
        object.__setattr__(
            self,
            "condition_max",
            _optional_decimal(self.condition_max, field_name="condition_max"),
        )

        if self.value < ZERO:
            raise ConfigurationError(f"Rule '{self.name}' value cannot be negative")

        if (
            self.condition_min is not None
            and self.condition_max is not None
            and self.condition_min > self.condition_max
        ):
            raise ConfigurationError(
                f"Rule '{self.name}' condition_min exceeds condition_max"
            )


@dataclass(frozen=True)
class ManualOverride:
    """Cashier-entered discount for one line. Wins outright over campaigns."""

    kind: DiscountKind
    value: Decimal
    apply_once: bool = False

    def __post_init__(self):
        if not isinstance(self.kind, DiscountKind):
            raise ConfigurationError(f"Unknown discount kind: {self.kind!r}")
        object.__setattr__(self, "value", to_decimal(self.value))
        if self.value < ZERO:
            raise ConfigurationError("Manual override value cannot be negative")

    def as_rule(self) -> DiscountRuleConfig:
        return DiscountRuleConfig(
            name="Manual override",
            kind=self.kind,
            value=self.value,
            apply_once=self.apply_once,
        )


@dataclass(frozen=True)
class RuleSlot:
    """One position in an item-rule precedence list."""

    config: DiscountRuleConfig | None
    rule_type: RuleType
    context: RuleContext


@dataclass(frozen=True)
class ProductDiscountConfiguration:
    product_id: str
    is_active: bool = True
    value_rule: DiscountRuleConfig | None = None
    quantity_rule: DiscountRuleConfig | None = None
    specific_quantity_rule: DiscountRuleConfig | None = None
    specific_unit_price_rule: DiscountRuleConfig | None = None

    def rule_slots(self) -> tuple[RuleSlot, ...]:
        return (
            RuleSlot(self.value_rule, RuleType.PRODUCT_LINE_VALUE, RuleContext.LINE_VALUE),
            RuleSlot(self.quantity_rule, RuleType.PRODUCT_LINE_QUANTITY, RuleContext.QUANTITY),
            RuleSlot(
                self.specific_quantity_rule,
                RuleType.PRODUCT_SPECIFIC_QUANTITY,
                RuleContext.SPECIFIC_QUANTITY,
            ),
            RuleSlot(
                self.specific_unit_price_rule,
                RuleType.PRODUCT_SPECIFIC_UNIT_PRICE,
                RuleContext.SPECIFIC_UNIT_PRICE,
            ),
        )


@dataclass(frozen=True)
class BuyGetRule:
    buy_product_id: str
    buy_quantity: int
    get_product_id: str
    get_quantity: int
    discount_kind: DiscountKind
    discount_value: Decimal
    repeatable: bool = False

    def __post_init__(self):
        if not isinstance(self.discount_kind, DiscountKind):
            raise ConfigurationError(f"Unknown discount kind: {self.discount_kind!r}")
        if int(self.buy_quantity) <= 0 or int(self.get_quantity) <= 0:
            raise ConfigurationError("Buy/get quantities must be greater than zero")
        object.__setattr__(self, "buy_quantity", int(self.buy_quantity))
        object.__setattr__(self, "get_quantity", int(self.get_quantity))
        object.__setattr__(
            self,
            "discount_value",
            to_decimal(self.discount_value, field_name="discount_value"),
        )
        if self.discount_value < ZERO:
            raise ConfigurationError("Buy/get discount value cannot be negative")

    @property
    def short_name(self) -> str:
        return f"Buy {self.buy_quantity} Get {self.get_quantity}"


@dataclass(frozen=True)
class DiscountCampaign:
    """
    Resolved campaign snapshot (persisted as DiscountSet).

    The engine never re-fetches or mutates it.
    """

    id: str
    name: str
    is_active: bool = True
    default_value_rule: DiscountRuleConfig | None = None
    default_quantity_rule: DiscountRuleConfig | None = None
    default_specific_quantity_rule: DiscountRuleConfig | None = None
    default_specific_unit_price_rule: DiscountRuleConfig | None = None
    global_cart_price_rule: DiscountRuleConfig | None = None
    global_cart_quantity_rule: DiscountRuleConfig | None = None
    buy_get_rules: tuple[BuyGetRule, ...] = ()
    product_configurations: Mapping[str, ProductDiscountConfiguration] = field(
        default_factory=dict
    )
    one_time_per_transaction: bool = False

    def default_rule_slots(self) -> tuple[RuleSlot, ...]:
        return (
            RuleSlot(self.default_value_rule, RuleType.DEFAULT_LINE_VALUE, RuleContext.LINE_VALUE),
            RuleSlot(
                self.default_quantity_rule, RuleType.DEFAULT_LINE_QUANTITY, RuleContext.QUANTITY
            ),
            RuleSlot(
                self.default_specific_quantity_rule,
                RuleType.DEFAULT_SPECIFIC_QUANTITY,
                RuleContext.SPECIFIC_QUANTITY,
            ),
            RuleSlot(
                self.default_specific_unit_price_rule,
                RuleType.DEFAULT_SPECIFIC_UNIT_PRICE,
                RuleContext.SPECIFIC_UNIT_PRICE,
            ),
        )


# ============================================================
# CATALOG + CART
# ============================================================


@dataclass(frozen=True)
class CatalogEntry:
    product_id: str
    name: str
    selling_price: Decimal
    batch_prices: Mapping[str, Decimal] = field(default_factory=dict)
    tax_rate: Decimal | None = None
    is_service: bool = False

    def price_for(self, batch_id: str | None = None) -> Decimal:
        if batch_id is not None and batch_id in self.batch_prices:
            return self.batch_prices[batch_id]
        return self.selling_price


@dataclass(frozen=True)
class SaleLine:
    product_id: str
    unit_price: Decimal
    quantity: int
    batch_id: str | None = None
    manual_override: ManualOverride | None = None

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price, field_name="unit_price"))
        object.__setattr__(self, "quantity", int(self.quantity))

    @property
    def line_id(self) -> str:
        if self.batch_id:
            return f"{self.product_id}:{self.batch_id}"
        return self.product_id

    @property
    def line_value(self) -> Decimal:
        return self.unit_price * Decimal(self.quantity)


# ============================================================
# RESULTS
# ============================================================


@dataclass(frozen=True)
class AppliedRuleRecord:
    campaign_name: str
    rule_name: str
    rule_type: RuleType
    amount: Decimal
    affected_product_id: str | None = None
    applied_once: bool = False


@dataclass(frozen=True)
class LineDiscount:
    line_id: str
    product_id: str
    rule_name: str
    campaign_name: str
    total_for_line: Decimal
    per_unit_equivalent: Decimal
    rule_type: RuleType
    applied_once: bool = False

    def merged_with(self, *, amount: Decimal, rule_name: str, quantity: int) -> "LineDiscount":
        total = self.total_for_line + amount
        names = f"{self.rule_name}, {rule_name}" if self.rule_name else rule_name
        return replace(
            self,
            rule_name=names,
            total_for_line=total,
            per_unit_equivalent=total / Decimal(quantity) if quantity > 0 else ZERO,
            applied_once=False,
        )

    def capped_at(self, limit: Decimal, *, quantity: int) -> "LineDiscount":
        if self.total_for_line <= limit:
            return self
        return replace(
            self,
            total_for_line=limit,
            per_unit_equivalent=limit / Decimal(quantity) if quantity > 0 else ZERO,
        )


@dataclass(frozen=True)
class DiscountComputation:
    item_discounts: Mapping[str, LineDiscount]
    item_discount_total: Decimal
    cart_discount_total: Decimal
    cart_rules_applied: tuple[AppliedRuleRecord, ...]
    audit_log: tuple[AppliedRuleRecord, ...]

    @classmethod
    def empty(cls) -> "DiscountComputation":
        return cls(
            item_discounts={},
            item_discount_total=ZERO,
            cart_discount_total=ZERO,
            cart_rules_applied=(),
            audit_log=(),
        )

    def discount_for(self, line_id: str) -> Decimal:
        entry = self.item_discounts.get(line_id)
        return entry.total_for_line if entry is not None else ZERO

    @property
    def total_discount(self) -> Decimal:
        return self.item_discount_total + self.cart_discount_total
