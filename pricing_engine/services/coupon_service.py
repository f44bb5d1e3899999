"""Coupon service for bulk generation, redemption and statistics."""

import logging
import secrets
import string
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from pricing_engine.core.config import settings
from pricing_engine.models.coupon import Coupon
from pricing_engine.models.coupon_redemption import CouponRedemption
from pricing_engine.repositories.coupon_redemption_repository import CouponRedemptionRepository
from pricing_engine.repositories.coupon_repository import CouponRepository
from pricing_engine.schemas.coupon import CouponTemplate

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits

# Attempts per requested code before giving up on finding a free one.
_MAX_ATTEMPTS_PER_CODE = 10


@dataclass
class CouponStatistics:
    """Aggregated coupon usage for an organization."""

    total_coupons: int
    active_coupons: int
    total_redemptions: int
    top_coupons: list[tuple[str, str, int]]


def generate_code(length: int = settings.COUPON_CODE_LENGTH, prefix: str = "") -> str:
    """Random upper-case alphanumeric code, optionally prefixed."""
    body = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix.upper()}{body}"


class CouponService:
    """Service for coupon operations that go beyond plain CRUD."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)
        self.redemption_repo = CouponRedemptionRepository(db)

    def generate_bulk(
        self,
        template: CouponTemplate,
        count: int,
        organization_id: UUID,
        prefix: str = "",
        length: int = settings.COUPON_CODE_LENGTH,
    ) -> list[Coupon]:
        """Create ``count`` coupons sharing ``template`` with fresh unique codes.

        Raises:
            ValueError: If enough unused codes cannot be found.
        """
        codes: list[str] = []
        seen: set[str] = set()
        attempts = 0
        while len(codes) < count:
            attempts += 1
            if attempts > count * _MAX_ATTEMPTS_PER_CODE:
                raise ValueError("Could not generate enough unique coupon codes")
            code = generate_code(length, prefix)
            if code in seen or self.coupon_repo.code_exists(code, organization_id):
                continue
            seen.add(code)
            codes.append(code)

        coupons = self.coupon_repo.create_many(template, codes, organization_id)
        logger.info("Generated %d coupon codes for organization %s", len(coupons), organization_id)
        return coupons

    def redeem_coupon(
        self,
        code: str,
        customer_id: str,
        organization_id: UUID,
        order_reference: str | None = None,
    ) -> CouponRedemption:
        """Record one use of a coupon by a customer.

        This is the only place a coupon's usage count moves. Eligibility
        against an order is the job of validation; redemption only enforces
        the hard limits.

        Raises:
            ValueError: If the coupon is unknown, inactive or used up.
        """
        coupon = self.coupon_repo.get_by_code(code, organization_id)
        if not coupon:
            raise ValueError(f"Coupon '{code}' not found")

        if not coupon.is_active:
            raise ValueError("This coupon is not active")

        if coupon.max_usages is not None and coupon.usage_count >= coupon.max_usages:
            raise ValueError("This coupon has reached its usage limit")

        if coupon.max_usages_per_customer is not None:
            used = self.redemption_repo.usage_by_customer(customer_id, organization_id)
            if used.get(str(coupon.code), 0) >= coupon.max_usages_per_customer:
                raise ValueError(
                    "You have already used this coupon the maximum number of times"
                )

        redemption = self.redemption_repo.create(
            coupon_id=coupon.id,  # type: ignore[arg-type]
            customer_id=customer_id,
            order_reference=order_reference,
            commit=False,
        )
        self.coupon_repo.increment_usage(coupon)
        self.db.refresh(redemption)
        logger.info("Coupon %s redeemed by customer %s", coupon.code, customer_id)
        return redemption

    def statistics(self, organization_id: UUID) -> CouponStatistics:
        return CouponStatistics(
            total_coupons=self.coupon_repo.count(organization_id),
            active_coupons=self.coupon_repo.count(organization_id, is_active=True),
            total_redemptions=self.redemption_repo.count(organization_id),
            top_coupons=self.redemption_repo.top_coupons(organization_id),
        )
