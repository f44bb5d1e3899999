"""Coupon model for customer-supplied discount codes."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)

from pricing_engine.core.database import Base
from pricing_engine.models.shared import DEFAULT_ORGANIZATION_ID, UUIDType, generate_uuid


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    BOGO = "bogo"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"


class Coupon(Base):
    """Coupon model. ``code`` is stored upper-cased and unique per organization."""

    __tablename__ = "coupons"
    __table_args__ = (UniqueConstraint("organization_id", "code", name="uq_coupons_org_code"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_ORGANIZATION_ID,
    )
    code = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    coupon_type = Column(String(20), nullable=False)
    value = Column(Numeric(12, 4), nullable=False, default=0)
    max_discount = Column(Numeric(12, 4), nullable=True)
    min_order_value = Column(Numeric(12, 4), nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)

    max_usages = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    max_usages_per_customer = Column(Integer, nullable=True)

    applicable_products = Column(JSON, nullable=False, default=list)
    excluded_products = Column(JSON, nullable=False, default=list)
    applicable_customers = Column(JSON, nullable=False, default=list)
    applicable_customer_tiers = Column(JSON, nullable=False, default=list)

    buy_quantity = Column(Integer, nullable=True)
    get_quantity = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
