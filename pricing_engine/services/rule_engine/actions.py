"""Action application: turn a matched rule's action into a price adjustment."""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from pricing_engine.models.pricing_rule import ActionType
from pricing_engine.services.rule_engine.context import Action

ZERO = Decimal("0")
CENT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    return f"${round_money(amount):,.2f}"


def format_number(value: Decimal) -> str:
    """Render 10.00 as "10" and 12.50 as "12.5"."""
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class ActionResult:
    """Effect of one action.

    ``amount`` is the monetary discount on the item price; shipping and
    points are reported separately and never reduce the item price.
    """

    amount: Decimal
    description: str
    action_type: str | None = None
    percentage: Decimal | None = None
    shipping_discount: Decimal = ZERO
    bonus_points: Decimal = ZERO


def _percentage_discount(action: Action, base_amount: Decimal) -> ActionResult:
    amount = base_amount * action.value / Decimal(100)
    if action.max_discount is not None:
        amount = min(amount, action.max_discount)
    amount = max(ZERO, min(amount, base_amount))
    return ActionResult(
        amount=amount,
        description=f"{format_number(action.value)}% off",
        action_type=ActionType.PERCENTAGE_DISCOUNT.value,
        percentage=action.value,
    )


def _fixed_discount(action: Action, base_amount: Decimal) -> ActionResult:
    cap = action.max_discount if action.max_discount is not None else action.value
    amount = max(ZERO, min(action.value, base_amount, cap))
    return ActionResult(
        amount=amount,
        description=f"{format_money(action.value)} off",
        action_type=ActionType.FIXED_DISCOUNT.value,
    )


def _fixed_price(action: Action, base_amount: Decimal) -> ActionResult:
    return ActionResult(
        amount=max(ZERO, base_amount - action.value),
        description=f"fixed price {format_money(action.value)}",
        action_type=ActionType.FIXED_PRICE.value,
    )


def _free_shipping(action: Action, base_amount: Decimal) -> ActionResult:
    return ActionResult(
        amount=ZERO,
        description="free shipping",
        action_type=ActionType.FREE_SHIPPING.value,
        shipping_discount=max(ZERO, action.value),
    )


def _bonus_points(action: Action, base_amount: Decimal) -> ActionResult:
    return ActionResult(
        amount=ZERO,
        description=f"+{format_number(action.value)} bonus points",
        action_type=ActionType.BONUS_POINTS.value,
        bonus_points=max(ZERO, action.value),
    )


_APPLICATORS: dict[ActionType, Callable[[Action, Decimal], ActionResult]] = {
    ActionType.PERCENTAGE_DISCOUNT: _percentage_discount,
    ActionType.FIXED_DISCOUNT: _fixed_discount,
    ActionType.FIXED_PRICE: _fixed_price,
    ActionType.FREE_SHIPPING: _free_shipping,
    ActionType.BONUS_POINTS: _bonus_points,
}


def apply_action(action: Action, base_amount: Decimal) -> ActionResult:
    """Compute the adjustment ``action`` contributes against ``base_amount``.

    Amounts keep full precision; callers round only when presenting them.
    Unknown action types contribute nothing.
    """
    try:
        action_type = ActionType(action.type)
    except ValueError:
        return ActionResult(amount=ZERO, description=f"unsupported action '{action.type}'")
    return _APPLICATORS[action_type](action, base_amount)
