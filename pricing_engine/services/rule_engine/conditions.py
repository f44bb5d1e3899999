"""Condition evaluation for pricing rules.

Both the field vocabulary and the operator set are closed enums dispatched
through lookup tables. Anything outside them (or a value of the wrong shape)
evaluates to ``False`` so a single malformed rule can never break pricing.
"""

import logging
from collections.abc import Callable, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from pricing_engine.models.pricing_rule import ConditionField, ConditionOperator, LogicalOperator
from pricing_engine.services.rule_engine.context import Condition, EvaluationContext

logger = logging.getLogger(__name__)


def _day_of_week(ctx: EvaluationContext) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (ctx.as_of.weekday() + 1) % 7


_FIELD_EXTRACTORS: dict[ConditionField, Callable[[EvaluationContext], Any]] = {
    ConditionField.QUANTITY: lambda ctx: ctx.item.quantity,
    ConditionField.PRODUCT_ID: lambda ctx: ctx.item.product_id,
    ConditionField.PRODUCT_NAME: lambda ctx: ctx.item.product_name,
    ConditionField.PRICE: lambda ctx: ctx.item.price,
    ConditionField.ORDER_TOTAL: lambda ctx: (
        ctx.order_total if ctx.order_total is not None else ctx.item.line_total
    ),
    ConditionField.CUSTOMER_ID: lambda ctx: ctx.customer.id,
    ConditionField.CUSTOMER_EMAIL: lambda ctx: ctx.customer.email,
    ConditionField.CUSTOMER_TIER: lambda ctx: ctx.customer.tier,
    ConditionField.CUSTOMER_TAGS: lambda ctx: ctx.customer.tags,
    ConditionField.TOTAL_ORDERS: lambda ctx: ctx.customer.total_orders,
    ConditionField.TOTAL_SPENT: lambda ctx: ctx.customer.total_spent,
    ConditionField.DATE: lambda ctx: ctx.as_of.date().isoformat(),
    ConditionField.MONTH: lambda ctx: ctx.as_of.month,
    ConditionField.DAY_OF_WEEK: _day_of_week,
    ConditionField.HOUR: lambda ctx: ctx.as_of.hour,
    ConditionField.IS_WEEKEND: lambda ctx: ctx.as_of.weekday() >= 5,
    ConditionField.IS_NEW_CUSTOMER: lambda ctx: ctx.customer.total_orders == 0,
}


def to_decimal(value: Any) -> Decimal | None:
    """Coerce ``value`` to a finite Decimal, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _values_equal(left: Any, right: Any) -> bool:
    left_number = to_decimal(left) if not isinstance(left, str) else None
    right_number = to_decimal(right) if not isinstance(right, str) else None
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return bool(left == right)


def _compare(predicate: Callable[[Decimal, Decimal], bool]) -> Callable[[Any, Any], bool]:
    def compare(field_value: Any, expected: Any) -> bool:
        left = to_decimal(field_value)
        right = to_decimal(expected)
        if left is None or right is None:
            return False
        return predicate(left, right)

    return compare


def _between(field_value: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)) or len(expected) != 2:
        return False
    number = to_decimal(field_value)
    low, high = to_decimal(expected[0]), to_decimal(expected[1])
    if number is None or low is None or high is None:
        return False
    return low <= number <= high


def _in(field_value: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)):
        return False
    return any(_values_equal(field_value, candidate) for candidate in expected)


def _not_in(field_value: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)):
        return False
    return not _in(field_value, expected)


def _contains(field_value: Any, expected: Any) -> bool:
    if field_value is None or expected is None:
        return False
    if isinstance(field_value, (list, tuple)):
        return _in(expected, field_value)
    return str(expected).lower() in str(field_value).lower()


def _not_contains(field_value: Any, expected: Any) -> bool:
    if field_value is None or expected is None:
        return False
    return not _contains(field_value, expected)


_OPERATORS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _values_equal,
    ConditionOperator.NOT_EQUALS: lambda field_value, expected: not _values_equal(
        field_value, expected
    ),
    ConditionOperator.GT: _compare(lambda a, b: a > b),
    ConditionOperator.GTE: _compare(lambda a, b: a >= b),
    ConditionOperator.LT: _compare(lambda a, b: a < b),
    ConditionOperator.LTE: _compare(lambda a, b: a <= b),
    ConditionOperator.BETWEEN: _between,
    ConditionOperator.IN: _in,
    ConditionOperator.NOT_IN: _not_in,
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: _not_contains,
}


def evaluate_condition(condition: Condition, context: EvaluationContext) -> bool:
    """Evaluate a single condition against the context."""
    try:
        field = ConditionField(condition.field)
        operator = ConditionOperator(condition.operator)
    except ValueError:
        logger.debug(
            "Unsupported condition %s %s, treating as non-matching",
            condition.field,
            condition.operator,
        )
        return False

    field_value = _FIELD_EXTRACTORS[field](context)
    return _OPERATORS[operator](field_value, condition.value)


def matches(conditions: Sequence[Condition], context: EvaluationContext) -> bool:
    """Fold conditions left to right.

    The logical operator attached to a condition decides how the *next*
    condition combines with the running result. Every condition is evaluated.
    """
    if not conditions:
        return True

    result = evaluate_condition(conditions[0], context)
    for previous, condition in zip(conditions, conditions[1:], strict=False):
        current = evaluate_condition(condition, context)
        if previous.logical_operator == LogicalOperator.OR.value:
            result = result or current
        else:
            result = result and current
    return result
