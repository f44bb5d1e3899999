"""Coupon repository for data access."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from pricing_engine.core.sorting import apply_order_by
from pricing_engine.models.coupon import Coupon, CouponType
from pricing_engine.models.coupon_redemption import CouponRedemption
from pricing_engine.models.shared import utc_now
from pricing_engine.schemas.coupon import CouponCreate, CouponTemplate, CouponUpdate

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = {
    "description",
    "max_discount",
    "min_order_value",
    "max_usages",
    "max_usages_per_customer",
}


def _normalize(code: str) -> str:
    return code.strip().upper()


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        order_by: str | None = None,
        is_active: bool | None = None,
        coupon_type: CouponType | None = None,
    ) -> list[Coupon]:
        """Get all coupons with optional filters."""
        query = self.db.query(Coupon).filter(Coupon.organization_id == organization_id)

        if is_active is not None:
            query = query.filter(Coupon.is_active == is_active)
        if coupon_type is not None:
            query = query.filter(Coupon.coupon_type == coupon_type.value)

        query = apply_order_by(query, Coupon, order_by)
        return query.offset(skip).limit(limit).all()

    def get_all_for_pricing(self, organization_id: UUID) -> list[Coupon]:
        """Every coupon of the organization, unfiltered."""
        return self.db.query(Coupon).filter(Coupon.organization_id == organization_id).all()

    def count(self, organization_id: UUID, is_active: bool | None = None) -> int:
        query = self.db.query(func.count(Coupon.id)).filter(
            Coupon.organization_id == organization_id
        )
        if is_active is not None:
            query = query.filter(Coupon.is_active == is_active)
        return query.scalar() or 0

    def get_by_id(self, coupon_id: UUID, organization_id: UUID | None = None) -> Coupon | None:
        """Get a coupon by ID."""
        query = self.db.query(Coupon).filter(Coupon.id == coupon_id)
        if organization_id is not None:
            query = query.filter(Coupon.organization_id == organization_id)
        return query.first()

    def get_by_code(self, code: str, organization_id: UUID) -> Coupon | None:
        """Get a coupon by code, case-insensitively."""
        return (
            self.db.query(Coupon)
            .filter(Coupon.code == _normalize(code), Coupon.organization_id == organization_id)
            .first()
        )

    def code_exists(self, code: str, organization_id: UUID) -> bool:
        return self.get_by_code(code, organization_id) is not None

    def create(self, data: CouponCreate, organization_id: UUID) -> Coupon:
        """Create a new coupon."""
        coupon = self._build(data, data.code, organization_id)
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        logger.info("Created coupon %s", coupon.code)
        return coupon

    def create_many(
        self, template: CouponTemplate, codes: list[str], organization_id: UUID
    ) -> list[Coupon]:
        """Create one coupon per code from a shared template in a single commit."""
        coupons = [self._build(template, code, organization_id) for code in codes]
        self.db.add_all(coupons)
        self.db.commit()
        for coupon in coupons:
            self.db.refresh(coupon)
        logger.info("Created %d coupons from template %r", len(coupons), template.name)
        return coupons

    def _build(self, data: CouponTemplate, code: str, organization_id: UUID) -> Coupon:
        return Coupon(
            organization_id=organization_id,
            code=_normalize(code),
            name=data.name,
            description=data.description,
            coupon_type=data.coupon_type.value,
            value=data.value,
            max_discount=data.max_discount,
            min_order_value=data.min_order_value,
            valid_from=data.valid_from or utc_now(),
            valid_until=data.valid_until,
            max_usages=data.max_usages,
            usage_count=0,
            max_usages_per_customer=data.max_usages_per_customer,
            applicable_products=list(data.applicable_products),
            excluded_products=list(data.excluded_products),
            applicable_customers=list(data.applicable_customers),
            applicable_customer_tiers=list(data.applicable_customer_tiers),
            buy_quantity=data.buy_quantity,
            get_quantity=data.get_quantity,
            is_active=data.is_active,
        )

    def update(self, code: str, data: CouponUpdate, organization_id: UUID) -> Coupon | None:
        """Update a coupon by code."""
        coupon = self.get_by_code(code, organization_id)
        if not coupon:
            return None

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            setattr(coupon, key, value)

        self.db.commit()
        self.db.refresh(coupon)
        logger.info("Updated coupon %s", coupon.code)
        return coupon

    def delete(self, code: str, organization_id: UUID) -> bool:
        """Delete a coupon and its redemptions."""
        coupon = self.get_by_code(code, organization_id)
        if not coupon:
            return False

        self.db.query(CouponRedemption).filter(
            CouponRedemption.coupon_id == coupon.id
        ).delete(synchronize_session=False)
        self.db.delete(coupon)
        self.db.commit()
        logger.info("Deleted coupon %s", coupon.code)
        return True

    def increment_usage(self, coupon: Coupon, count: int = 1) -> Coupon:
        coupon.usage_count = (coupon.usage_count or 0) + count  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(coupon)
        return coupon
