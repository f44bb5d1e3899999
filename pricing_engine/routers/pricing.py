"""Price calculation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pricing_engine.core.auth import get_current_organization
from pricing_engine.core.database import get_db
from pricing_engine.models.pricing_rule import PricingRule
from pricing_engine.schemas.pricing import (
    AppliedDiscountResponse,
    ApplicableRulesRequest,
    CouponRejectionResponse,
    PriceBreakdownResponse,
    PriceCalculationRequest,
)
from pricing_engine.schemas.pricing_rule import PricingRuleResponse
from pricing_engine.services.pricing_service import PricingService
from pricing_engine.services.rule_engine import PriceBreakdown

router = APIRouter()


def _breakdown_response(breakdown: PriceBreakdown) -> PriceBreakdownResponse:
    return PriceBreakdownResponse(
        base_price=breakdown.base_price,
        quantity=breakdown.quantity,
        subtotal=breakdown.subtotal,
        discounts=[
            AppliedDiscountResponse(
                source=discount.source,
                source_id=discount.source_id,
                name=discount.name,
                action_type=discount.action_type,
                amount=discount.amount,
                percentage=discount.percentage,
            )
            for discount in breakdown.discounts
        ],
        total_savings=breakdown.total_savings,
        final_price=breakdown.final_price,
        final_price_per_unit=breakdown.final_price_per_unit,
        loyalty_points=breakdown.loyalty_points,
        shipping_discount=breakdown.shipping_discount,
        applied_rule_ids=[UUID(rule_id) for rule_id in breakdown.applied_rule_ids],
        applied_coupon_codes=list(breakdown.applied_coupon_codes),
        rejected_coupons=[
            CouponRejectionResponse(code=rejection.code, reason=rejection.reason)
            for rejection in breakdown.rejected_coupons
        ],
        breakdown=breakdown.breakdown,
    )


@router.post(
    "/calculate",
    response_model=PriceBreakdownResponse,
    summary="Calculate price",
    responses={422: {"description": "Validation error"}},
)
async def calculate_price(
    data: PriceCalculationRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PriceBreakdownResponse:
    """Price a line item against the organization's rules and the given coupons.

    Rejected coupons are listed in ``rejected_coupons``; they never fail the
    request.
    """
    breakdown = PricingService(db).calculate_price(
        organization_id,
        data.item,
        data.customer,
        as_of=data.as_of,
        coupon_codes=data.coupon_codes,
        order_total=data.order_total,
    )
    return _breakdown_response(breakdown)


@router.post(
    "/applicable_rules",
    response_model=list[PricingRuleResponse],
    summary="List applicable rules",
    responses={422: {"description": "Validation error"}},
)
async def list_applicable_rules(
    data: ApplicableRulesRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[PricingRule]:
    """Rules whose conditions match, in evaluation order, before stacking."""
    return PricingService(db).get_applicable_rules(
        organization_id,
        data.item,
        data.customer,
        as_of=data.as_of,
        order_total=data.order_total,
    )


@router.post(
    "/preview/{rule_id}",
    response_model=PriceBreakdownResponse,
    summary="Preview rule price",
    responses={
        404: {"description": "Pricing rule not found"},
        422: {"description": "Validation error"},
    },
)
async def preview_rule_price(
    rule_id: UUID,
    data: ApplicableRulesRequest,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PriceBreakdownResponse:
    """Price a line item with only this rule in play, treated as active."""
    try:
        breakdown = PricingService(db).preview_price(
            rule_id,
            organization_id,
            data.item,
            data.customer,
            as_of=data.as_of,
            order_total=data.order_total,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return _breakdown_response(breakdown)
