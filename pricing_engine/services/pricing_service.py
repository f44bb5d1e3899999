"""Pricing service: loads a tenant's rules and coupons and runs the rule engine."""

import dataclasses
import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from pricing_engine.models.coupon import Coupon
from pricing_engine.models.pricing_rule import PricingRule
from pricing_engine.models.shared import ensure_utc, utc_now
from pricing_engine.repositories.coupon_redemption_repository import CouponRedemptionRepository
from pricing_engine.repositories.coupon_repository import CouponRepository
from pricing_engine.repositories.pricing_rule_repository import PricingRuleRepository
from pricing_engine.schemas.pricing import CustomerInput, OrderItemInput
from pricing_engine.services.rule_engine import (
    Action,
    Condition,
    Conflict,
    CouponDefinition,
    CouponValidation,
    CustomerProfile,
    OrderItem,
    PriceBreakdown,
    PriceCalculator,
    Rule,
    detect_conflicts,
)

logger = logging.getLogger(__name__)


def _decimal(value: object) -> Decimal:
    return Decimal(str(value))


def _optional_decimal(value: object | None) -> Decimal | None:
    return None if value is None else _decimal(value)


def to_rule(model: PricingRule) -> Rule:
    """Convert a stored rule into the engine's immutable value."""
    conditions = tuple(
        Condition(
            field=str(raw.get("field", "")),
            operator=str(raw.get("operator", "")),
            value=raw.get("value"),
            logical_operator=raw.get("logical_operator"),
        )
        for raw in (model.conditions or [])
    )
    actions = tuple(
        Action(
            type=str(raw.get("type", "")),
            value=_decimal(raw.get("value", 0)),
            max_discount=_optional_decimal(raw.get("max_discount")),
            apply_to=raw.get("apply_to"),
        )
        for raw in (model.actions or [])
    )
    return Rule(
        id=str(model.id),
        name=str(model.name),
        rule_type=str(model.rule_type),
        priority=int(model.priority),  # type: ignore[arg-type]
        start_date=ensure_utc(model.start_date),  # type: ignore[arg-type]
        is_active=bool(model.is_active),
        is_stackable=bool(model.is_stackable),
        end_date=ensure_utc(model.end_date) if model.end_date is not None else None,  # type: ignore[arg-type]
        max_usages=model.max_usages,  # type: ignore[arg-type]
        usage_count=model.usage_count or 0,  # type: ignore[arg-type]
        conditions=conditions,
        actions=actions,
        description=model.description or "",  # type: ignore[arg-type]
    )


def to_coupon(model: Coupon) -> CouponDefinition:
    """Convert a stored coupon into the engine's immutable value."""
    return CouponDefinition(
        code=str(model.code),
        coupon_type=str(model.coupon_type),
        value=_decimal(model.value),
        valid_from=ensure_utc(model.valid_from),  # type: ignore[arg-type]
        valid_until=ensure_utc(model.valid_until),  # type: ignore[arg-type]
        name=str(model.name),
        is_active=bool(model.is_active),
        max_discount=_optional_decimal(model.max_discount),
        min_order_value=_optional_decimal(model.min_order_value),
        max_usages=model.max_usages,  # type: ignore[arg-type]
        usage_count=model.usage_count or 0,  # type: ignore[arg-type]
        max_usages_per_customer=model.max_usages_per_customer,  # type: ignore[arg-type]
        applicable_products=tuple(model.applicable_products or ()),
        excluded_products=tuple(model.excluded_products or ()),
        applicable_customers=tuple(model.applicable_customers or ()),
        applicable_customer_tiers=tuple(model.applicable_customer_tiers or ()),
        buy_quantity=model.buy_quantity,  # type: ignore[arg-type]
        get_quantity=model.get_quantity,  # type: ignore[arg-type]
    )


def to_order_item(data: OrderItemInput) -> OrderItem:
    return OrderItem(
        product_id=data.product_id,
        quantity=data.quantity,
        price=data.price,
        product_name=data.product_name,
    )


class PricingService:
    """Prices line items against a tenant's rules and coupons.

    Rules and coupons are loaded fresh for every call and injected into a
    ``PriceCalculator``; nothing is cached between requests and nothing is
    written back. Usage counters move only through the explicit usage and
    redemption operations.
    """

    def __init__(self, db: Session):
        self.db = db
        self.rule_repo = PricingRuleRepository(db)
        self.coupon_repo = CouponRepository(db)
        self.redemption_repo = CouponRedemptionRepository(db)

    def _customer_profile(self, data: CustomerInput, organization_id: UUID) -> CustomerProfile:
        return CustomerProfile(
            id=data.id,
            email=data.email,
            tags=tuple(data.tags),
            total_orders=data.total_orders,
            total_spent=data.total_spent,
            created_at=data.created_at,
            coupon_usage=self.redemption_repo.usage_by_customer(data.id, organization_id),
        )

    def _calculator(
        self,
        organization_id: UUID,
        rules: Sequence[Rule] | None = None,
        with_coupons: bool = True,
    ) -> PriceCalculator:
        if rules is None:
            rules = [to_rule(model) for model in self.rule_repo.get_in_store_order(organization_id)]
        coupons = (
            [to_coupon(model) for model in self.coupon_repo.get_all_for_pricing(organization_id)]
            if with_coupons
            else []
        )
        return PriceCalculator(rules, coupons)

    def calculate_price(
        self,
        organization_id: UUID,
        item: OrderItemInput,
        customer: CustomerInput,
        as_of: datetime | None = None,
        coupon_codes: Sequence[str] = (),
        order_total: Decimal | None = None,
    ) -> PriceBreakdown:
        calculator = self._calculator(organization_id, with_coupons=bool(coupon_codes))
        breakdown = calculator.calculate_price(
            to_order_item(item),
            self._customer_profile(customer, organization_id),
            ensure_utc(as_of) if as_of else utc_now(),
            coupon_codes=coupon_codes,
            order_total=order_total,
        )
        logger.debug(
            "Priced %s x%d for organization %s: %s",
            item.product_id,
            item.quantity,
            organization_id,
            breakdown.final_price,
        )
        return breakdown

    def get_applicable_rules(
        self,
        organization_id: UUID,
        item: OrderItemInput,
        customer: CustomerInput,
        as_of: datetime | None = None,
        order_total: Decimal | None = None,
    ) -> list[PricingRule]:
        """Stored rules matching the context, in evaluation order."""
        models = self.rule_repo.get_in_store_order(organization_id)
        by_id = {str(model.id): model for model in models}
        calculator = self._calculator(
            organization_id, rules=[to_rule(model) for model in models], with_coupons=False
        )
        applicable = calculator.get_applicable_rules(
            to_order_item(item),
            self._customer_profile(customer, organization_id),
            ensure_utc(as_of) if as_of else utc_now(),
            order_total=order_total,
        )
        return [by_id[rule.id] for rule in applicable]

    def preview_price(
        self,
        rule_id: UUID,
        organization_id: UUID,
        item: OrderItemInput,
        customer: CustomerInput,
        as_of: datetime | None = None,
        order_total: Decimal | None = None,
    ) -> PriceBreakdown:
        """Price the item with only ``rule_id`` in play, treated as active.

        The stored rule is left untouched.

        Raises:
            ValueError: If the rule does not exist.
        """
        model = self.rule_repo.get_by_id(rule_id, organization_id)
        if not model:
            raise ValueError(f"Pricing rule {rule_id} not found")

        rule = dataclasses.replace(to_rule(model), is_active=True)
        calculator = self._calculator(organization_id, rules=[rule], with_coupons=False)
        return calculator.calculate_price(
            to_order_item(item),
            self._customer_profile(customer, organization_id),
            ensure_utc(as_of) if as_of else utc_now(),
            order_total=order_total,
        )

    def validate_coupon(
        self,
        organization_id: UUID,
        code: str,
        items: Sequence[OrderItemInput],
        customer: CustomerInput,
        subtotal: Decimal | None = None,
        as_of: datetime | None = None,
    ) -> CouponValidation:
        """Validate a coupon without redeeming it.

        ``subtotal`` defaults to the sum of the item line totals.
        """
        order_items = [to_order_item(item) for item in items]
        if subtotal is None:
            subtotal = sum((item.line_total for item in order_items), Decimal("0"))

        coupon = self.coupon_repo.get_by_code(code, organization_id)
        calculator = PriceCalculator([], [to_coupon(coupon)] if coupon else [])
        validation = calculator.validate_coupon(
            code,
            order_items,
            self._customer_profile(customer, organization_id),
            subtotal,
            ensure_utc(as_of) if as_of else utc_now(),
        )
        if not validation.valid:
            logger.info("Coupon %s rejected: %s", validation.code, validation.error)
        return validation

    def available_rules(
        self, organization_id: UUID, as_of: datetime | None = None
    ) -> list[Rule]:
        """Rules that are active, inside their window and under their usage cap at ``as_of``."""
        moment = ensure_utc(as_of) if as_of else utc_now()
        return [
            rule
            for rule in (
                to_rule(model) for model in self.rule_repo.get_in_store_order(organization_id)
            )
            if rule.is_available(moment)
        ]

    def detect_conflicts(
        self, organization_id: UUID, as_of: datetime | None = None
    ) -> list[Conflict]:
        """Conflicts among the rules available at ``as_of`` (default now)."""
        return detect_conflicts(self.available_rules(organization_id, as_of))
