"""CouponRedemption model for per-customer coupon usage tracking."""

from sqlalchemy import Column, DateTime, ForeignKey, String, func

from pricing_engine.core.database import Base
from pricing_engine.models.shared import UUIDType, generate_uuid


class CouponRedemption(Base):
    """One explicit use of a coupon by a customer."""

    __tablename__ = "coupon_redemptions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    coupon_id = Column(
        UUIDType, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id = Column(String(255), nullable=False, index=True)
    order_reference = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
