from pricing_engine.services.rule_engine.actions import ActionResult, apply_action, round_money
from pricing_engine.services.rule_engine.calculator import PriceCalculator, resolve_stacking
from pricing_engine.services.rule_engine.conditions import evaluate_condition, matches
from pricing_engine.services.rule_engine.conflicts import detect_conflicts
from pricing_engine.services.rule_engine.context import (
    Action,
    AppliedDiscount,
    Condition,
    Conflict,
    CouponDefinition,
    CouponEffect,
    CouponRejection,
    CouponValidation,
    CustomerProfile,
    EvaluationContext,
    OrderItem,
    PriceBreakdown,
    Rule,
)
from pricing_engine.services.rule_engine.coupons import normalize_code, validate_coupon

__all__ = [
    "Action",
    "ActionResult",
    "AppliedDiscount",
    "Condition",
    "Conflict",
    "CouponDefinition",
    "CouponEffect",
    "CouponRejection",
    "CouponValidation",
    "CustomerProfile",
    "EvaluationContext",
    "OrderItem",
    "PriceBreakdown",
    "PriceCalculator",
    "Rule",
    "apply_action",
    "detect_conflicts",
    "evaluate_condition",
    "matches",
    "normalize_code",
    "resolve_stacking",
    "round_money",
    "validate_coupon",
]
