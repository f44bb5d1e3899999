from pricing_engine.models.coupon import Coupon, CouponType
from pricing_engine.models.coupon_redemption import CouponRedemption
from pricing_engine.models.organization import Organization
from pricing_engine.models.pricing_rule import (
    ActionTarget,
    ActionType,
    ConditionField,
    ConditionOperator,
    LogicalOperator,
    PricingRule,
    RuleType,
)

__all__ = [
    "ActionTarget",
    "ActionType",
    "ConditionField",
    "ConditionOperator",
    "Coupon",
    "CouponRedemption",
    "CouponType",
    "LogicalOperator",
    "Organization",
    "PricingRule",
    "RuleType",
]
