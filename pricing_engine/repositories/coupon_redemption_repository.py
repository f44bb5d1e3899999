"""CouponRedemption repository for data access."""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from pricing_engine.models.coupon import Coupon
from pricing_engine.models.coupon_redemption import CouponRedemption


class CouponRedemptionRepository:
    """Repository for CouponRedemption model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        coupon_id: UUID,
        customer_id: str,
        order_reference: str | None = None,
        commit: bool = True,
    ) -> CouponRedemption:
        redemption = CouponRedemption(
            coupon_id=coupon_id,
            customer_id=customer_id,
            order_reference=order_reference,
        )
        self.db.add(redemption)
        if commit:
            self.db.commit()
            self.db.refresh(redemption)
        return redemption

    def get_by_coupon_id(self, coupon_id: UUID) -> list[CouponRedemption]:
        return (
            self.db.query(CouponRedemption)
            .filter(CouponRedemption.coupon_id == coupon_id)
            .order_by(CouponRedemption.created_at.desc())
            .all()
        )

    def usage_by_customer(self, customer_id: str, organization_id: UUID) -> dict[str, int]:
        """Map coupon code -> times ``customer_id`` redeemed it."""
        if not customer_id:
            return {}
        rows = (
            self.db.query(Coupon.code, func.count(CouponRedemption.id))
            .select_from(CouponRedemption)
            .join(Coupon, Coupon.id == CouponRedemption.coupon_id)
            .filter(
                CouponRedemption.customer_id == customer_id,
                Coupon.organization_id == organization_id,
            )
            .group_by(Coupon.code)
            .all()
        )
        return {str(code): int(total) for code, total in rows}

    def count(self, organization_id: UUID) -> int:
        return (
            self.db.query(func.count(CouponRedemption.id))
            .join(Coupon, Coupon.id == CouponRedemption.coupon_id)
            .filter(Coupon.organization_id == organization_id)
            .scalar()
            or 0
        )

    def top_coupons(self, organization_id: UUID, limit: int = 5) -> list[tuple[str, str, int]]:
        """(code, name, redemptions) for the most redeemed coupons."""
        redemptions = func.count(CouponRedemption.id).label("redemptions")
        rows = (
            self.db.query(Coupon.code, Coupon.name, redemptions)
            .select_from(CouponRedemption)
            .join(Coupon, Coupon.id == CouponRedemption.coupon_id)
            .filter(Coupon.organization_id == organization_id)
            .group_by(Coupon.id, Coupon.code, Coupon.name)
            .order_by(redemptions.desc(), Coupon.code.asc())
            .limit(limit)
            .all()
        )
        return [(str(code), str(name), int(total)) for code, name, total in rows]
