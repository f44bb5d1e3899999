from pricing_engine.repositories.coupon_redemption_repository import CouponRedemptionRepository
from pricing_engine.repositories.coupon_repository import CouponRepository
from pricing_engine.repositories.organization_repository import OrganizationRepository
from pricing_engine.repositories.pricing_rule_repository import PricingRuleRepository

__all__ = [
    "CouponRedemptionRepository",
    "CouponRepository",
    "OrganizationRepository",
    "PricingRuleRepository",
]
