"""Pricing rule API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from pricing_engine.core.auth import get_current_organization
from pricing_engine.core.database import get_db
from pricing_engine.models.pricing_rule import PricingRule, RuleType
from pricing_engine.models.shared import ensure_utc
from pricing_engine.repositories.organization_repository import OrganizationRepository
from pricing_engine.repositories.pricing_rule_repository import PricingRuleRepository
from pricing_engine.schemas.pricing_rule import (
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
    RuleConflictResponse,
    RuleDuplicateRequest,
    RuleStatisticsResponse,
    RuleUsageRequest,
    RuleUsageSummary,
)
from pricing_engine.services.pricing_service import PricingService

router = APIRouter()


@router.post(
    "/",
    response_model=PricingRuleResponse,
    status_code=201,
    summary="Create pricing rule",
    responses={422: {"description": "Validation error"}},
)
async def create_pricing_rule(
    data: PricingRuleCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Create a pricing rule at the end of the store order."""
    OrganizationRepository(db).ensure(organization_id)
    return PricingRuleRepository(db).create(data, organization_id)


@router.get(
    "/",
    response_model=list[PricingRuleResponse],
    summary="List pricing rules",
)
async def list_pricing_rules(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    is_active: bool | None = None,
    rule_type: RuleType | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[PricingRule]:
    """List pricing rules in store order, with optional filters."""
    repo = PricingRuleRepository(db)
    response.headers["X-Total-Count"] = str(
        repo.count(organization_id, is_active=is_active, rule_type=rule_type)
    )
    return repo.get_all(
        organization_id,
        skip=skip,
        limit=limit,
        order_by=order_by,
        is_active=is_active,
        rule_type=rule_type,
    )


@router.get(
    "/conflicts",
    response_model=list[RuleConflictResponse],
    summary="Detect rule conflicts",
)
async def list_rule_conflicts(
    as_of: datetime | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[RuleConflictResponse]:
    """Pairs of available rules whose conditions test a common field."""
    conflicts = PricingService(db).detect_conflicts(organization_id, as_of)
    return [
        RuleConflictResponse(
            rule1_id=UUID(conflict.rule1.id),
            rule1_name=conflict.rule1.name,
            rule2_id=UUID(conflict.rule2.id),
            rule2_name=conflict.rule2.name,
            reason=conflict.reason,
            shared_fields=list(conflict.shared_fields),
        )
        for conflict in conflicts
    ]


@router.get(
    "/statistics",
    response_model=RuleStatisticsResponse,
    summary="Get pricing rule statistics",
)
async def get_rule_statistics(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> RuleStatisticsResponse:
    """Rule counts, total usages and the five most used rules.

    ``active_rules`` counts rules that can apply right now: active, inside
    their date window and under their usage cap.
    """
    repo = PricingRuleRepository(db)
    return RuleStatisticsResponse(
        total_rules=repo.count(organization_id),
        active_rules=len(PricingService(db).available_rules(organization_id)),
        total_usages=repo.total_usages(organization_id),
        top_rules=[
            RuleUsageSummary(
                id=rule.id,  # type: ignore[arg-type]
                name=rule.name,  # type: ignore[arg-type]
                usage_count=rule.usage_count,  # type: ignore[arg-type]
            )
            for rule in repo.top_by_usage(organization_id)
        ],
    )


@router.get(
    "/{rule_id}",
    response_model=PricingRuleResponse,
    summary="Get pricing rule",
    responses={404: {"description": "Pricing rule not found"}},
)
async def get_pricing_rule(
    rule_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Get a pricing rule by ID."""
    rule = PricingRuleRepository(db).get_by_id(rule_id, organization_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule


@router.put(
    "/{rule_id}",
    response_model=PricingRuleResponse,
    summary="Update pricing rule",
    responses={
        404: {"description": "Pricing rule not found"},
        422: {"description": "Validation error"},
    },
)
async def update_pricing_rule(
    rule_id: UUID,
    data: PricingRuleUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Partially update a pricing rule."""
    repo = PricingRuleRepository(db)
    existing = repo.get_by_id(rule_id, organization_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Pricing rule not found")

    start = data.start_date if "start_date" in data.model_fields_set else existing.start_date
    end = data.end_date if "end_date" in data.model_fields_set else existing.end_date
    if start is not None and end is not None and ensure_utc(end) < ensure_utc(start):
        raise HTTPException(status_code=422, detail="end_date must be after start_date")

    return repo.update(rule_id, data, organization_id)  # type: ignore[return-value]


@router.delete(
    "/{rule_id}",
    status_code=204,
    summary="Delete pricing rule",
    responses={404: {"description": "Pricing rule not found"}},
)
async def delete_pricing_rule(
    rule_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> None:
    """Delete a pricing rule."""
    if not PricingRuleRepository(db).delete(rule_id, organization_id):
        raise HTTPException(status_code=404, detail="Pricing rule not found")


@router.post(
    "/{rule_id}/toggle",
    response_model=PricingRuleResponse,
    summary="Toggle pricing rule",
    responses={404: {"description": "Pricing rule not found"}},
)
async def toggle_pricing_rule(
    rule_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Flip a pricing rule between active and inactive."""
    rule = PricingRuleRepository(db).toggle(rule_id, organization_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule


@router.post(
    "/{rule_id}/duplicate",
    response_model=PricingRuleResponse,
    status_code=201,
    summary="Duplicate pricing rule",
    responses={404: {"description": "Pricing rule not found"}},
)
async def duplicate_pricing_rule(
    rule_id: UUID,
    data: RuleDuplicateRequest | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Copy a pricing rule; the copy starts with zero usages."""
    name = data.name if data else None
    rule = PricingRuleRepository(db).duplicate(rule_id, organization_id, name=name)
    if not rule:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule


@router.post(
    "/{rule_id}/usage",
    response_model=PricingRuleResponse,
    summary="Record pricing rule usage",
    responses={404: {"description": "Pricing rule not found"}},
)
async def record_pricing_rule_usage(
    rule_id: UUID,
    data: RuleUsageRequest | None = None,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> PricingRule:
    """Increment a rule's usage count after an order has been placed."""
    count = data.count if data else 1
    rule = PricingRuleRepository(db).increment_usage(rule_id, organization_id, count)
    if not rule:
        raise HTTPException(status_code=404, detail="Pricing rule not found")
    return rule
