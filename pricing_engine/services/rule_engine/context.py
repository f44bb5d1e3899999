"""Immutable values exchanged with the rule engine.

The engine never touches the database: the service layer converts stored
rules and coupons into these values and passes them in explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

DEFAULT_CUSTOMER_TIER = "regular"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    quantity: int
    price: Decimal
    product_name: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CustomerProfile:
    id: str = ""
    email: str | None = None
    tags: tuple[str, ...] = ()
    total_orders: int = 0
    total_spent: Decimal = Decimal("0")
    created_at: datetime | None = None
    # Coupon code -> times this customer already redeemed it.
    coupon_usage: Mapping[str, int] = field(default_factory=dict)

    @property
    def tier(self) -> str:
        return self.tags[0] if self.tags else DEFAULT_CUSTOMER_TIER


@dataclass(frozen=True)
class EvaluationContext:
    item: OrderItem
    customer: CustomerProfile
    as_of: datetime
    order_total: Decimal | None = None


@dataclass(frozen=True)
class Condition:
    field: str
    operator: str
    value: Any = None
    logical_operator: str | None = None


@dataclass(frozen=True)
class Action:
    type: str
    value: Decimal
    max_discount: Decimal | None = None
    apply_to: str | None = None


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    rule_type: str
    priority: int
    start_date: datetime
    is_active: bool = True
    is_stackable: bool = True
    end_date: datetime | None = None
    max_usages: int | None = None
    usage_count: int = 0
    conditions: tuple[Condition, ...] = ()
    actions: tuple[Action, ...] = ()
    description: str = ""

    def is_available(self, as_of: datetime) -> bool:
        """Active, inside its validity window and under its usage cap."""
        if not self.is_active:
            return False
        moment = as_utc(as_of)
        if as_utc(self.start_date) > moment:
            return False
        if self.end_date is not None and as_utc(self.end_date) < moment:
            return False
        if self.max_usages is not None and self.usage_count >= self.max_usages:
            return False
        return True


@dataclass(frozen=True)
class CouponDefinition:
    code: str
    coupon_type: str
    value: Decimal
    valid_from: datetime
    valid_until: datetime
    name: str = ""
    is_active: bool = True
    max_discount: Decimal | None = None
    min_order_value: Decimal | None = None
    max_usages: int | None = None
    usage_count: int = 0
    max_usages_per_customer: int | None = None
    applicable_products: tuple[str, ...] = ()
    excluded_products: tuple[str, ...] = ()
    applicable_customers: tuple[str, ...] = ()
    applicable_customer_tiers: tuple[str, ...] = ()
    buy_quantity: int | None = None
    get_quantity: int | None = None


@dataclass(frozen=True)
class CouponEffect:
    """What a validated coupon does, detached from the amount it is applied to."""

    coupon_type: str
    value: Decimal
    max_discount: Decimal | None = None
    buy_quantity: int | None = None
    get_quantity: int | None = None


@dataclass(frozen=True)
class CouponValidation:
    code: str
    valid: bool
    error: str | None = None
    discount: Decimal = Decimal("0")
    message: str | None = None
    effect: CouponEffect | None = None


@dataclass(frozen=True)
class AppliedDiscount:
    source: str  # "rule" or "coupon"
    source_id: str
    name: str
    action_type: str
    amount: Decimal
    percentage: Decimal | None = None


@dataclass(frozen=True)
class CouponRejection:
    code: str
    reason: str


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    quantity: int
    subtotal: Decimal
    discounts: tuple[AppliedDiscount, ...]
    total_savings: Decimal
    final_price: Decimal
    final_price_per_unit: Decimal
    loyalty_points: Decimal
    shipping_discount: Decimal
    applied_rule_ids: tuple[str, ...]
    applied_coupon_codes: tuple[str, ...]
    rejected_coupons: tuple[CouponRejection, ...]
    breakdown: str


@dataclass(frozen=True)
class Conflict:
    rule1: Rule
    rule2: Rule
    reason: str
    shared_fields: tuple[str, ...] = ()
