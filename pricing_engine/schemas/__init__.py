from pricing_engine.schemas.coupon import (
    CouponCreate,
    CouponGenerateRequest,
    CouponRedeemRequest,
    CouponResponse,
    CouponTemplate,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationResponse,
)
from pricing_engine.schemas.pricing import (
    ApplicableRulesRequest,
    CustomerInput,
    OrderItemInput,
    PriceBreakdownResponse,
    PriceCalculationRequest,
)
from pricing_engine.schemas.pricing_rule import (
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
    RuleAction,
    RuleCondition,
)

__all__ = [
    "ApplicableRulesRequest",
    "CouponCreate",
    "CouponGenerateRequest",
    "CouponRedeemRequest",
    "CouponResponse",
    "CouponTemplate",
    "CouponUpdate",
    "CouponValidateRequest",
    "CouponValidationResponse",
    "CustomerInput",
    "OrderItemInput",
    "PriceBreakdownResponse",
    "PriceCalculationRequest",
    "PricingRuleCreate",
    "PricingRuleResponse",
    "PricingRuleUpdate",
    "RuleAction",
    "RuleCondition",
]
