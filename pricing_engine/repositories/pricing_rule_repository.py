"""Pricing rule repository: the persistent rule store."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from pricing_engine.core.sorting import apply_order_by
from pricing_engine.models.pricing_rule import PricingRule, RuleType
from pricing_engine.models.shared import utc_now
from pricing_engine.schemas.pricing_rule import PricingRuleCreate, PricingRuleUpdate

logger = logging.getLogger(__name__)

# Columns an update may clear by sending null.
_NULLABLE_FIELDS = {"description", "end_date", "max_usages"}


class PricingRuleRepository:
    """Repository for PricingRule model.

    The only writer of rule state, including ``is_active`` and ``usage_count``.
    """

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, organization_id: UUID):  # type: ignore[no-untyped-def]
        return self.db.query(PricingRule).filter(PricingRule.organization_id == organization_id)

    def get_all(
        self,
        organization_id: UUID,
        skip: int = 0,
        limit: int = 100,
        order_by: str | None = None,
        is_active: bool | None = None,
        rule_type: RuleType | None = None,
    ) -> list[PricingRule]:
        """Get rules with optional filters, in store order unless ``order_by`` is given."""
        query = self._scoped(organization_id)
        if is_active is not None:
            query = query.filter(PricingRule.is_active == is_active)
        if rule_type is not None:
            query = query.filter(PricingRule.rule_type == rule_type.value)
        query = apply_order_by(
            query, PricingRule, order_by, default_field="position", default_direction="asc"
        )
        return query.offset(skip).limit(limit).all()

    def get_in_store_order(self, organization_id: UUID) -> list[PricingRule]:
        """Every rule of the organization ordered by position."""
        return self._scoped(organization_id).order_by(PricingRule.position.asc()).all()

    def count(
        self,
        organization_id: UUID,
        is_active: bool | None = None,
        rule_type: RuleType | None = None,
    ) -> int:
        query = self.db.query(func.count(PricingRule.id)).filter(
            PricingRule.organization_id == organization_id
        )
        if is_active is not None:
            query = query.filter(PricingRule.is_active == is_active)
        if rule_type is not None:
            query = query.filter(PricingRule.rule_type == rule_type.value)
        return query.scalar() or 0

    def get_by_id(self, rule_id: UUID, organization_id: UUID | None = None) -> PricingRule | None:
        query = self.db.query(PricingRule).filter(PricingRule.id == rule_id)
        if organization_id is not None:
            query = query.filter(PricingRule.organization_id == organization_id)
        return query.first()

    def _next_position(self, organization_id: UUID) -> int:
        current = (
            self.db.query(func.max(PricingRule.position))
            .filter(PricingRule.organization_id == organization_id)
            .scalar()
        )
        return (current or 0) + 1

    def create(self, data: PricingRuleCreate, organization_id: UUID) -> PricingRule:
        payload = data.model_dump(mode="json", include={"conditions", "actions"})
        rule = PricingRule(
            organization_id=organization_id,
            name=data.name,
            description=data.description,
            rule_type=data.rule_type.value,
            conditions=payload["conditions"],
            actions=payload["actions"],
            priority=data.priority,
            position=self._next_position(organization_id),
            is_active=data.is_active,
            is_stackable=data.is_stackable,
            start_date=data.start_date or utc_now(),
            end_date=data.end_date,
            max_usages=data.max_usages,
            usage_count=0,
            tags=list(data.tags),
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Created pricing rule %s (%s)", rule.id, rule.name)
        return rule

    def update(
        self, rule_id: UUID, data: PricingRuleUpdate, organization_id: UUID
    ) -> PricingRule | None:
        rule = self.get_by_id(rule_id, organization_id)
        if not rule:
            return None

        update_data = data.model_dump(exclude_unset=True, mode="json")
        for key, value in update_data.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            if key in ("start_date", "end_date"):
                value = getattr(data, key)
            setattr(rule, key, value)

        self.db.commit()
        self.db.refresh(rule)
        logger.info("Updated pricing rule %s", rule.id)
        return rule

    def delete(self, rule_id: UUID, organization_id: UUID) -> bool:
        rule = self.get_by_id(rule_id, organization_id)
        if not rule:
            return False
        self.db.delete(rule)
        self.db.commit()
        logger.info("Deleted pricing rule %s", rule_id)
        return True

    def toggle(self, rule_id: UUID, organization_id: UUID) -> PricingRule | None:
        """Flip ``is_active``."""
        rule = self.get_by_id(rule_id, organization_id)
        if not rule:
            return None
        rule.is_active = not rule.is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Pricing rule %s is now %s", rule.id, "active" if rule.is_active else "inactive")
        return rule

    def duplicate(
        self, rule_id: UUID, organization_id: UUID, name: str | None = None
    ) -> PricingRule | None:
        """Copy a rule to the end of the store with a fresh usage count."""
        rule = self.get_by_id(rule_id, organization_id)
        if not rule:
            return None
        copy = PricingRule(
            organization_id=organization_id,
            name=name or f"{rule.name} (copy)",
            description=rule.description,
            rule_type=rule.rule_type,
            conditions=list(rule.conditions or []),
            actions=list(rule.actions or []),
            priority=rule.priority,
            position=self._next_position(organization_id),
            is_active=rule.is_active,
            is_stackable=rule.is_stackable,
            start_date=rule.start_date,
            end_date=rule.end_date,
            max_usages=rule.max_usages,
            usage_count=0,
            tags=list(rule.tags or []),
        )
        self.db.add(copy)
        self.db.commit()
        self.db.refresh(copy)
        logger.info("Duplicated pricing rule %s as %s", rule.id, copy.id)
        return copy

    def increment_usage(
        self, rule_id: UUID, organization_id: UUID, count: int = 1
    ) -> PricingRule | None:
        rule = self.get_by_id(rule_id, organization_id)
        if not rule:
            return None
        rule.usage_count = (rule.usage_count or 0) + count  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Pricing rule %s used %d time(s), total %d", rule.id, count, rule.usage_count)
        return rule

    def total_usages(self, organization_id: UUID) -> int:
        return (
            self.db.query(func.coalesce(func.sum(PricingRule.usage_count), 0))
            .filter(PricingRule.organization_id == organization_id)
            .scalar()
            or 0
        )

    def top_by_usage(self, organization_id: UUID, limit: int = 5) -> list[PricingRule]:
        return (
            self._scoped(organization_id)
            .order_by(PricingRule.usage_count.desc(), PricingRule.position.asc())
            .limit(limit)
            .all()
        )
