"""Price calculation: rule selection, stacking, coupons and the breakdown trace."""

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from pricing_engine.models.pricing_rule import ActionType
from pricing_engine.services.rule_engine.actions import (
    ZERO,
    ActionResult,
    apply_action,
    format_money,
    format_number,
    round_money,
)
from pricing_engine.services.rule_engine.conditions import matches
from pricing_engine.services.rule_engine.context import (
    Action,
    AppliedDiscount,
    CouponDefinition,
    CouponRejection,
    CouponValidation,
    CustomerProfile,
    EvaluationContext,
    OrderItem,
    PriceBreakdown,
    Rule,
)
from pricing_engine.services.rule_engine.coupons import (
    apply_coupon_effect,
    normalize_code,
    validate_coupon,
)

logger = logging.getLogger(__name__)


def resolve_stacking(candidates: Sequence[Rule]) -> list[Rule]:
    """Pick the rules that actually apply from priority-sorted candidates.

    The first candidate always applies. A later one applies only if it is
    stackable and everything applied before it is stackable too.
    """
    applied: list[Rule] = []
    for rule in candidates:
        if not applied:
            applied.append(rule)
        elif rule.is_stackable and all(previous.is_stackable for previous in applied):
            applied.append(rule)
    return applied


class PriceCalculator:
    """Evaluates an injected rule set and coupon catalog.

    Rules keep the order they were given in (store order); that order breaks
    ties between equal priorities. The calculator never mutates rules or
    coupons; usage counting is left to the caller.
    """

    def __init__(self, rules: Sequence[Rule], coupons: Sequence[CouponDefinition] = ()):
        self.rules = tuple(rules)
        self.coupons = {normalize_code(coupon.code): coupon for coupon in coupons}

    def _rule_matches(self, rule: Rule, context: EvaluationContext) -> bool:
        try:
            return rule.is_available(context.as_of) and matches(rule.conditions, context)
        except Exception:
            logger.exception("Pricing rule %s could not be evaluated, skipping it", rule.id)
            return False

    def _applicable(self, context: EvaluationContext) -> list[Rule]:
        candidates = [rule for rule in self.rules if self._rule_matches(rule, context)]
        # sorted() is stable: equal priorities keep store order
        return sorted(candidates, key=lambda rule: rule.priority)

    def get_applicable_rules(
        self,
        item: OrderItem,
        customer: CustomerProfile,
        as_of: datetime,
        order_total: Decimal | None = None,
    ) -> list[Rule]:
        """Matching rules in evaluation order, before stacking is resolved."""
        return self._applicable(EvaluationContext(item, customer, as_of, order_total))

    def validate_coupon(
        self,
        code: str,
        items: Sequence[OrderItem],
        customer: CustomerProfile,
        subtotal: Decimal,
        as_of: datetime,
    ) -> CouponValidation:
        coupon = self.coupons.get(normalize_code(code))
        return validate_coupon(code, coupon, items, customer, subtotal, as_of)

    def _apply_action(self, rule: Rule, action: Action, base_amount: Decimal) -> ActionResult:
        try:
            return apply_action(action, base_amount)
        except Exception:
            logger.exception("Action %s of pricing rule %s failed, ignoring it", action.type, rule.id)
            return ActionResult(amount=ZERO, description="invalid action")

    def calculate_price(
        self,
        item: OrderItem,
        customer: CustomerProfile,
        as_of: datetime,
        coupon_codes: Sequence[str] = (),
        order_total: Decimal | None = None,
    ) -> PriceBreakdown:
        """Compute the final price of a line item.

        Rule discounts compound on the remaining amount, except ``fixed_price``
        which always measures against the original subtotal. Valid coupons are
        then layered on in the order given; invalid ones are reported in
        ``rejected_coupons`` and skipped.
        """
        context = EvaluationContext(item, customer, as_of, order_total)
        subtotal = item.line_total
        remaining = subtotal
        total_discount = ZERO
        shipping_discount = ZERO
        loyalty_points = ZERO
        discounts: list[AppliedDiscount] = []
        trace = [
            f"Base: {format_money(item.price)} x {item.quantity} = {format_money(subtotal)}"
        ]

        applied_rules = resolve_stacking(self._applicable(context))
        if applied_rules:
            trace.append("Rules:")

        for rule in applied_rules:
            for action in rule.actions:
                base = subtotal if action.type == ActionType.FIXED_PRICE.value else remaining
                result = self._apply_action(rule, action, base)
                amount = min(result.amount, remaining)
                if amount > 0:
                    remaining -= amount
                    total_discount += amount
                    discounts.append(
                        AppliedDiscount(
                            source="rule",
                            source_id=rule.id,
                            name=rule.name,
                            action_type=result.action_type or action.type,
                            amount=round_money(amount),
                            percentage=result.percentage,
                        )
                    )
                    percent = (
                        f" ({format_number(result.percentage)}%)"
                        if result.percentage is not None
                        else ""
                    )
                    trace.append(f"  - {rule.name}: -{format_money(amount)}{percent}")
                if result.shipping_discount > 0:
                    shipping_discount += result.shipping_discount
                    trace.append(
                        f"  - {rule.name}: free shipping (-{format_money(result.shipping_discount)})"
                    )
                if result.bonus_points > 0:
                    loyalty_points += result.bonus_points
                    trace.append(
                        f"  - {rule.name}: +{format_number(result.bonus_points)} bonus points"
                    )

        coupon_subtotal = order_total if order_total is not None else subtotal
        applied_codes: list[str] = []
        rejected: list[CouponRejection] = []
        for raw_code in coupon_codes:
            code = normalize_code(raw_code)
            if code in applied_codes:
                rejected.append(CouponRejection(code=code, reason="Coupon already applied"))
                continue

            validation = self.validate_coupon(code, [item], customer, coupon_subtotal, as_of)
            if not validation.valid or validation.effect is None:
                rejected.append(
                    CouponRejection(code=code, reason=validation.error or "Invalid coupon")
                )
                continue

            result = apply_coupon_effect(validation.effect, remaining, [item])
            amount = min(result.amount, remaining)
            applied_codes.append(code)
            if len(applied_codes) == 1:
                trace.append("Coupons:")
            if amount > 0:
                remaining -= amount
                total_discount += amount
                discounts.append(
                    AppliedDiscount(
                        source="coupon",
                        source_id=code,
                        name=code,
                        action_type=validation.effect.coupon_type,
                        amount=round_money(amount),
                        percentage=result.percentage,
                    )
                )
                trace.append(f"  - {code}: -{format_money(amount)} ({result.description})")
            if result.shipping_discount > 0:
                shipping_discount += result.shipping_discount
                trace.append(
                    f"  - {code}: free shipping (-{format_money(result.shipping_discount)})"
                )

        for rejection in rejected:
            trace.append(f"Rejected coupon {rejection.code}: {rejection.reason}")

        final_price = max(ZERO, subtotal - total_discount)
        per_unit = final_price / item.quantity if item.quantity > 0 else final_price
        if shipping_discount > 0:
            trace.append(f"Shipping discount: {format_money(shipping_discount)}")
        if loyalty_points > 0:
            trace.append(f"Loyalty points: {format_number(loyalty_points)}")
        trace.append(f"Final: {format_money(final_price)}")

        return PriceBreakdown(
            base_price=round_money(item.price),
            quantity=item.quantity,
            subtotal=round_money(subtotal),
            discounts=tuple(discounts),
            total_savings=round_money(subtotal - final_price),
            final_price=round_money(final_price),
            final_price_per_unit=round_money(per_unit),
            loyalty_points=loyalty_points,
            shipping_discount=round_money(shipping_discount),
            applied_rule_ids=tuple(rule.id for rule in applied_rules),
            applied_coupon_codes=tuple(applied_codes),
            rejected_coupons=tuple(rejected),
            breakdown="\n".join(trace),
        )
