"""Coupon and coupon redemption API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from pricing_engine.core.auth import get_current_organization
from pricing_engine.core.config import settings
from pricing_engine.core.database import get_db
from pricing_engine.core.rate_limiter import RateLimiter
from pricing_engine.models.coupon import Coupon, CouponType
from pricing_engine.models.coupon_redemption import CouponRedemption
from pricing_engine.models.shared import ensure_utc
from pricing_engine.repositories.coupon_redemption_repository import CouponRedemptionRepository
from pricing_engine.repositories.coupon_repository import CouponRepository
from pricing_engine.repositories.organization_repository import OrganizationRepository
from pricing_engine.schemas.coupon import (
    CouponCreate,
    CouponEffectResponse,
    CouponGenerateRequest,
    CouponGenerateResponse,
    CouponRedeemRequest,
    CouponRedemptionResponse,
    CouponResponse,
    CouponStatisticsResponse,
    CouponUpdate,
    CouponUsageSummary,
    CouponValidateRequest,
    CouponValidationResponse,
)
from pricing_engine.services.coupon_service import CouponService
from pricing_engine.services.pricing_service import PricingService

router = APIRouter()

# Module-level rate limiter instance for coupon validation
coupon_validation_rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_COUPON_VALIDATIONS_PER_MINUTE,
    window_seconds=60,
)


def _check_rate_limit(organization_id: UUID = Depends(get_current_organization)) -> UUID:
    """Dependency that enforces coupon validation rate limiting per organization."""
    key = str(organization_id)
    if not coupon_validation_rate_limiter.is_allowed(key):
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Maximum "
            f"{settings.RATE_LIMIT_COUPON_VALIDATIONS_PER_MINUTE} coupon validations per minute.",
            headers={"Retry-After": str(coupon_validation_rate_limiter.retry_after(key))},
        )
    return organization_id


@router.post(
    "/",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={
        409: {"description": "Coupon with this code already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_coupon(
    data: CouponCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Coupon:
    """Create a new coupon."""
    repo = CouponRepository(db)
    if repo.code_exists(data.code, organization_id):
        raise HTTPException(status_code=409, detail="Coupon with this code already exists")
    OrganizationRepository(db).ensure(organization_id)
    return repo.create(data, organization_id)


@router.get(
    "/",
    response_model=list[CouponResponse],
    summary="List coupons",
)
async def list_coupons(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    is_active: bool | None = None,
    coupon_type: CouponType | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[Coupon]:
    """List coupons with optional filters."""
    repo = CouponRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(organization_id, is_active=is_active))
    return repo.get_all(
        organization_id,
        skip=skip,
        limit=limit,
        order_by=order_by,
        is_active=is_active,
        coupon_type=coupon_type,
    )


@router.post(
    "/generate",
    response_model=CouponGenerateResponse,
    status_code=201,
    summary="Generate coupon codes",
    responses={
        400: {"description": "Could not generate enough unique codes"},
        422: {"description": "Validation error"},
    },
)
async def generate_coupons(
    data: CouponGenerateRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> CouponGenerateResponse:
    """Create a batch of coupons sharing one template, each with a random code."""
    OrganizationRepository(db).ensure(organization_id)
    try:
        coupons = CouponService(db).generate_bulk(
            data.template,
            data.count,
            organization_id,
            prefix=data.prefix,
            length=data.length,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return CouponGenerateResponse(codes=[str(coupon.code) for coupon in coupons])


@router.post(
    "/validate",
    response_model=CouponValidationResponse,
    summary="Validate coupon",
    responses={429: {"description": "Rate limit exceeded"}},
)
async def validate_coupon(
    data: CouponValidateRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(_check_rate_limit),
) -> CouponValidationResponse:
    """Check a coupon against a cart without redeeming it.

    An unusable coupon is reported with ``valid: false`` and a reason, never
    as an HTTP error.
    """
    validation = PricingService(db).validate_coupon(
        organization_id,
        data.code,
        data.items,
        data.customer,
        subtotal=data.subtotal,
        as_of=data.as_of,
    )
    effect = validation.effect
    return CouponValidationResponse(
        code=validation.code,
        valid=validation.valid,
        error=validation.error,
        discount=validation.discount,
        message=validation.message,
        effect=(
            CouponEffectResponse(
                coupon_type=effect.coupon_type,
                value=effect.value,
                max_discount=effect.max_discount,
                buy_quantity=effect.buy_quantity,
                get_quantity=effect.get_quantity,
            )
            if effect is not None
            else None
        ),
    )


@router.get(
    "/statistics",
    response_model=CouponStatisticsResponse,
    summary="Get coupon statistics",
)
async def get_coupon_statistics(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> CouponStatisticsResponse:
    """Coupon counts, total redemptions and the most redeemed coupons."""
    stats = CouponService(db).statistics(organization_id)
    return CouponStatisticsResponse(
        total_coupons=stats.total_coupons,
        active_coupons=stats.active_coupons,
        total_redemptions=stats.total_redemptions,
        top_coupons=[
            CouponUsageSummary(code=code, name=name, redemptions=redemptions)
            for code, name, redemptions in stats.top_coupons
        ],
    )


@router.get(
    "/{code}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon(
    code: str,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Coupon:
    """Get a coupon by code."""
    coupon = CouponRepository(db).get_by_code(code, organization_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.put(
    "/{code}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        404: {"description": "Coupon not found"},
        422: {"description": "Validation error"},
    },
)
async def update_coupon(
    code: str,
    data: CouponUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> Coupon:
    """Update a coupon by code.

    The merged coupon must still pass the checks applied at creation.
    """
    repo = CouponRepository(db)
    existing = repo.get_by_code(code, organization_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Coupon not found")

    value = data.value if data.value is not None else existing.value
    if existing.coupon_type == CouponType.PERCENTAGE.value and value > 100:
        raise HTTPException(status_code=422, detail="Percentage discount cannot exceed 100%")

    valid_from = data.valid_from if data.valid_from is not None else existing.valid_from
    valid_until = data.valid_until if data.valid_until is not None else existing.valid_until
    if ensure_utc(valid_until) < ensure_utc(valid_from):
        raise HTTPException(status_code=422, detail="valid_until must be after valid_from")

    return repo.update(code, data, organization_id)  # type: ignore[return-value]


@router.delete(
    "/{code}",
    status_code=204,
    summary="Delete coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def delete_coupon(
    code: str,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> None:
    """Delete a coupon and its redemption history."""
    if not CouponRepository(db).delete(code, organization_id):
        raise HTTPException(status_code=404, detail="Coupon not found")


@router.post(
    "/{code}/redeem",
    response_model=CouponRedemptionResponse,
    status_code=201,
    summary="Redeem coupon",
    responses={
        400: {"description": "Coupon is not active or has no uses left"},
        404: {"description": "Coupon not found"},
    },
)
async def redeem_coupon(
    code: str,
    data: CouponRedeemRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> CouponRedemption:
    """Record a coupon use for a customer once their order is placed."""
    if not CouponRepository(db).code_exists(code, organization_id):
        raise HTTPException(status_code=404, detail="Coupon not found")
    try:
        return CouponService(db).redeem_coupon(
            code, data.customer_id, organization_id, order_reference=data.order_reference
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None


@router.get(
    "/{code}/redemptions",
    response_model=list[CouponRedemptionResponse],
    summary="List coupon redemptions",
    responses={404: {"description": "Coupon not found"}},
)
async def list_coupon_redemptions(
    code: str,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[CouponRedemption]:
    """Redemptions of a coupon, newest first."""
    coupon = CouponRepository(db).get_by_code(code, organization_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return CouponRedemptionRepository(db).get_by_coupon_id(coupon.id)  # type: ignore[arg-type]
