"""Coupon and coupon redemption schemas."""

import re
from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pricing_engine.core.config import settings
from pricing_engine.models.coupon import CouponType
from pricing_engine.schemas.pricing import CustomerInput, OrderItemInput

_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$")


class CouponTemplate(BaseModel):
    """Every coupon attribute except its code."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    coupon_type: CouponType
    value: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    min_order_value: Decimal | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime
    max_usages: int | None = Field(default=None, ge=1)
    max_usages_per_customer: int | None = Field(default=None, ge=1)
    applicable_products: list[str] = Field(default_factory=list)
    excluded_products: list[str] = Field(default_factory=list)
    applicable_customers: list[str] = Field(default_factory=list)
    applicable_customer_tiers: list[str] = Field(default_factory=list)
    buy_quantity: int | None = Field(default=None, ge=1)
    get_quantity: int | None = Field(default=None, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_percentage_range(self) -> Self:
        if self.coupon_type == CouponType.PERCENTAGE and self.value > 100:
            msg = "Percentage discount cannot exceed 100%"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def validate_validity_window(self) -> Self:
        if self.valid_from is not None and self.valid_until < self.valid_from:
            msg = "valid_until must be after valid_from"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def validate_free_unit_quantities(self) -> Self:
        if self.coupon_type in (CouponType.BOGO, CouponType.BUY_X_GET_Y) and (
            self.buy_quantity is None or self.get_quantity is None
        ):
            msg = (
                "buy_quantity and get_quantity are required for "
                f"coupon_type '{self.coupon_type.value}'"
            )
            raise ValueError(msg)
        return self


class CouponCreate(CouponTemplate):
    code: str = Field(min_length=1, max_length=64)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not _CODE_PATTERN.match(code):
            msg = "Coupon code may only contain letters, digits, '-' and '_'"
            raise ValueError(msg)
        return code


class CouponUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    value: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    min_order_value: Decimal | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_usages: int | None = Field(default=None, ge=1)
    max_usages_per_customer: int | None = Field(default=None, ge=1)
    applicable_products: list[str] | None = None
    excluded_products: list[str] | None = None
    applicable_customers: list[str] | None = None
    applicable_customer_tiers: list[str] | None = None
    is_active: bool | None = None


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    description: str | None = None
    coupon_type: str
    value: Decimal
    max_discount: Decimal | None = None
    min_order_value: Decimal | None = None
    valid_from: datetime
    valid_until: datetime
    max_usages: int | None = None
    usage_count: int
    max_usages_per_customer: int | None = None
    applicable_products: list[str]
    excluded_products: list[str]
    applicable_customers: list[str]
    applicable_customer_tiers: list[str]
    buy_quantity: int | None = None
    get_quantity: int | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CouponGenerateRequest(BaseModel):
    count: int = Field(ge=1, le=settings.MAX_BULK_COUPONS)
    prefix: str = Field(default="", max_length=16, pattern=r"^[A-Za-z0-9_-]*$")
    length: int = Field(default=settings.COUPON_CODE_LENGTH, ge=4, le=32)
    template: CouponTemplate


class CouponGenerateResponse(BaseModel):
    codes: list[str]


class CouponValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    items: list[OrderItemInput] = Field(min_length=1)
    customer: CustomerInput = Field(default_factory=CustomerInput)
    subtotal: Decimal | None = Field(default=None, ge=0)
    as_of: datetime | None = None


class CouponEffectResponse(BaseModel):
    coupon_type: str
    value: Decimal
    max_discount: Decimal | None = None
    buy_quantity: int | None = None
    get_quantity: int | None = None


class CouponValidationResponse(BaseModel):
    code: str
    valid: bool
    error: str | None = None
    discount: Decimal
    message: str | None = None
    effect: CouponEffectResponse | None = None


class CouponRedeemRequest(BaseModel):
    customer_id: str = Field(min_length=1, max_length=255)
    order_reference: str | None = Field(default=None, max_length=255)


class CouponRedemptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coupon_id: UUID
    customer_id: str
    order_reference: str | None = None
    created_at: datetime


class CouponUsageSummary(BaseModel):
    code: str
    name: str
    redemptions: int


class CouponStatisticsResponse(BaseModel):
    total_coupons: int
    active_coupons: int
    total_redemptions: int
    top_coupons: list[CouponUsageSummary]
