"""Price calculation request and response schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class OrderItemInput(BaseModel):
    product_id: str = Field(min_length=1, max_length=255)
    product_name: str = Field(default="", max_length=255)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)


class CustomerInput(BaseModel):
    id: str = Field(default="", max_length=255)
    email: str | None = Field(default=None, max_length=255)
    tags: list[str] = Field(default_factory=list)
    total_orders: int = Field(default=0, ge=0)
    total_spent: Decimal = Field(default=Decimal("0"), ge=0)
    created_at: datetime | None = None


class PriceCalculationRequest(BaseModel):
    item: OrderItemInput
    customer: CustomerInput = Field(default_factory=CustomerInput)
    as_of: datetime | None = None
    coupon_codes: list[str] = Field(default_factory=list)
    order_total: Decimal | None = Field(default=None, ge=0)


class ApplicableRulesRequest(BaseModel):
    item: OrderItemInput
    customer: CustomerInput = Field(default_factory=CustomerInput)
    as_of: datetime | None = None
    order_total: Decimal | None = Field(default=None, ge=0)


class AppliedDiscountResponse(BaseModel):
    source: str
    source_id: str
    name: str
    action_type: str
    amount: Decimal
    percentage: Decimal | None = None


class CouponRejectionResponse(BaseModel):
    code: str
    reason: str


class PriceBreakdownResponse(BaseModel):
    base_price: Decimal
    quantity: int
    subtotal: Decimal
    discounts: list[AppliedDiscountResponse]
    total_savings: Decimal
    final_price: Decimal
    final_price_per_unit: Decimal
    loyalty_points: Decimal
    shipping_discount: Decimal
    applied_rule_ids: list[UUID]
    applied_coupon_codes: list[str]
    rejected_coupons: list[CouponRejectionResponse]
    breakdown: str
