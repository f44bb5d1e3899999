"""Coupon validation and coupon discount computation."""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from pricing_engine.models.coupon import CouponType
from pricing_engine.models.pricing_rule import ActionType
from pricing_engine.services.rule_engine.actions import (
    ZERO,
    ActionResult,
    apply_action,
    format_money,
    format_number,
    round_money,
)
from pricing_engine.services.rule_engine.context import (
    Action,
    CouponDefinition,
    CouponEffect,
    CouponValidation,
    CustomerProfile,
    OrderItem,
    as_utc,
)


def normalize_code(code: str) -> str:
    """Coupon codes are case-insensitive and stored upper-cased."""
    return code.strip().upper()


def eligible_items(items: Sequence[OrderItem], coupon: CouponDefinition) -> list[OrderItem]:
    """Items the coupon may discount, honoring the product allow/deny lists."""
    result = []
    for item in items:
        if item.product_id in coupon.excluded_products:
            continue
        if coupon.applicable_products and item.product_id not in coupon.applicable_products:
            continue
        result.append(item)
    return result


def _free_units_count(coupon_type: str, total_quantity: int, buy: int, get: int) -> int:
    """How many units a bogo or buy-x-get-y coupon makes free.

    ``bogo`` repeats for every full set of ``buy + get`` units; ``buy_x_get_y``
    frees ``get`` units once, as soon as ``buy`` units are in the cart.
    """
    if coupon_type == CouponType.BOGO.value:
        return (total_quantity // (buy + get)) * get
    return get if total_quantity >= buy else 0


def _free_units_value(items: Sequence[OrderItem], free_units: int) -> Decimal:
    """Value of the ``free_units`` cheapest units."""
    remaining_free = free_units
    value = ZERO
    for item in sorted(items, key=lambda i: i.price):
        if remaining_free <= 0:
            break
        free_quantity = min(item.quantity, remaining_free)
        value += item.price * free_quantity
        remaining_free -= free_quantity
    return value


def apply_coupon_effect(
    effect: CouponEffect,
    base_amount: Decimal,
    items: Sequence[OrderItem] = (),
) -> ActionResult:
    """Compute the discount a validated coupon gives against ``base_amount``."""
    if effect.coupon_type == CouponType.PERCENTAGE.value:
        action = Action(
            type=ActionType.PERCENTAGE_DISCOUNT.value,
            value=effect.value,
            max_discount=effect.max_discount,
        )
        return apply_action(action, base_amount)

    if effect.coupon_type == CouponType.FIXED.value:
        return apply_action(Action(type=ActionType.FIXED_DISCOUNT.value, value=effect.value), base_amount)

    if effect.coupon_type == CouponType.FREE_SHIPPING.value:
        return apply_action(Action(type=ActionType.FREE_SHIPPING.value, value=effect.value), base_amount)

    if effect.coupon_type in (CouponType.BOGO.value, CouponType.BUY_X_GET_Y.value):
        buy, get = effect.buy_quantity or 0, effect.get_quantity or 0
        if buy <= 0 or get <= 0:
            return ActionResult(amount=ZERO, description="buy X get Y")
        total_quantity = sum(item.quantity for item in items)
        free_units = _free_units_count(effect.coupon_type, total_quantity, buy, get)
        amount = min(_free_units_value(items, free_units), base_amount)
        return ActionResult(
            amount=max(ZERO, amount),
            description=f"buy {buy} get {get} free",
            action_type=effect.coupon_type,
        )

    return ActionResult(amount=ZERO, description=f"unsupported coupon type '{effect.coupon_type}'")


def _message(coupon: CouponDefinition, result: ActionResult) -> str:
    saved = format_money(result.amount)
    if coupon.coupon_type == CouponType.PERCENTAGE.value:
        return f"{format_number(coupon.value)}% off applied! You saved {saved}"
    if coupon.coupon_type == CouponType.FIXED.value:
        return f"{format_money(coupon.value)} off applied! You saved {saved}"
    if coupon.coupon_type == CouponType.FREE_SHIPPING.value:
        return "Free shipping applied!"
    if coupon.coupon_type in (CouponType.BOGO.value, CouponType.BUY_X_GET_Y.value):
        return f"Buy {coupon.buy_quantity} Get {coupon.get_quantity} Free! You saved {saved}"
    return f"Coupon applied! You saved {saved}"


def _reject(code: str, error: str) -> CouponValidation:
    return CouponValidation(code=code, valid=False, error=error)


def validate_coupon(
    code: str,
    coupon: CouponDefinition | None,
    items: Sequence[OrderItem],
    customer: CustomerProfile,
    subtotal: Decimal,
    as_of: datetime,
) -> CouponValidation:
    """Validate a coupon for an order.

    Checks run in a fixed order and the first failure is reported as the
    rejection reason. Never raises for a well-typed coupon.
    """
    code = normalize_code(code)
    if coupon is None:
        return _reject(code, "Invalid coupon code")

    if not coupon.is_active:
        return _reject(code, "This coupon is not active")

    moment = as_utc(as_of)
    if as_utc(coupon.valid_from) > moment:
        return _reject(
            code, f"This coupon is not valid until {as_utc(coupon.valid_from).date().isoformat()}"
        )

    if as_utc(coupon.valid_until) < moment:
        return _reject(code, "This coupon has expired")

    if coupon.max_usages is not None and coupon.usage_count >= coupon.max_usages:
        return _reject(code, "This coupon has reached its usage limit")

    if coupon.min_order_value is not None and subtotal < coupon.min_order_value:
        return _reject(
            code, f"Minimum order value of {format_money(coupon.min_order_value)} required"
        )

    if coupon.applicable_customers and customer.id not in coupon.applicable_customers:
        return _reject(code, "This coupon is not valid for your account")

    if coupon.applicable_customer_tiers and customer.tier not in coupon.applicable_customer_tiers:
        tiers = ", ".join(coupon.applicable_customer_tiers)
        return _reject(code, f"This coupon is only valid for {tiers} customers")

    if coupon.max_usages_per_customer is not None:
        used = customer.coupon_usage.get(code, 0)
        if used >= coupon.max_usages_per_customer:
            return _reject(code, "You have already used this coupon the maximum number of times")

    applicable = eligible_items(items, coupon)
    if not applicable:
        return _reject(code, "This coupon is not valid for any items in your cart")

    effect = CouponEffect(
        coupon_type=coupon.coupon_type,
        value=coupon.value,
        max_discount=coupon.max_discount,
        buy_quantity=coupon.buy_quantity,
        get_quantity=coupon.get_quantity,
    )
    eligible_total = sum((item.line_total for item in applicable), ZERO)
    result = apply_coupon_effect(effect, eligible_total, applicable)
    return CouponValidation(
        code=code,
        valid=True,
        discount=round_money(result.amount),
        message=_message(coupon, result),
        effect=effect,
    )
