"""Unit tests for static pricing rule conflict detection."""

from datetime import UTC, datetime
from decimal import Decimal

from pricing_engine.services.rule_engine import Action, Condition, Rule, detect_conflicts
from pricing_engine.services.rule_engine.conflicts import (
    BOTH_STACKABLE,
    NON_STACKABLE,
    SAME_PRIORITY,
    conflict_reason,
)

START = datetime(2026, 1, 1, tzinfo=UTC)


def _rule(rule_id: str, *fields: str, priority: int = 10, stackable: bool = True) -> Rule:
    return Rule(
        id=rule_id,
        name=f"Rule {rule_id}",
        rule_type="promotional",
        priority=priority,
        start_date=START,
        is_stackable=stackable,
        conditions=tuple(Condition(field, "gte", 1) for field in fields),
        actions=(Action("percentage_discount", Decimal("5")),),
    )


class TestConflictReason:
    def test_same_priority_wins_over_stackability(self):
        a = _rule("a", priority=5, stackable=True)
        b = _rule("b", priority=5, stackable=True)
        assert conflict_reason(a, b) == SAME_PRIORITY

    def test_both_stackable(self):
        assert conflict_reason(_rule("a", priority=1), _rule("b", priority=2)) == BOTH_STACKABLE

    def test_either_non_stackable(self):
        a = _rule("a", priority=1, stackable=False)
        b = _rule("b", priority=2)
        assert conflict_reason(a, b) == NON_STACKABLE
        assert conflict_reason(b, a) == NON_STACKABLE


class TestDetectConflicts:
    def test_shared_field_is_reported(self):
        a = _rule("a", "quantity", priority=1)
        b = _rule("b", "quantity", "customer_tier", priority=2)
        conflicts = detect_conflicts([a, b])

        assert len(conflicts) == 1
        assert conflicts[0].rule1 is a
        assert conflicts[0].rule2 is b
        assert conflicts[0].shared_fields == ("quantity",)
        assert conflicts[0].reason == BOTH_STACKABLE

    def test_disjoint_fields_do_not_conflict(self):
        assert detect_conflicts([_rule("a", "quantity"), _rule("b", "month")]) == []

    def test_rules_without_conditions_never_conflict(self):
        assert detect_conflicts([_rule("a"), _rule("b"), _rule("c", "quantity")]) == []

    def test_each_pair_reported_once_in_input_order(self):
        rules = [_rule(rule_id, "quantity", priority=i) for i, rule_id in enumerate("abcd")]
        conflicts = detect_conflicts(rules)

        pairs = [(c.rule1.id, c.rule2.id) for c in conflicts]
        assert pairs == [
            ("a", "b"),
            ("a", "c"),
            ("a", "d"),
            ("b", "c"),
            ("b", "d"),
            ("c", "d"),
        ]
        assert len(set(pairs)) == len(pairs)

    def test_shared_fields_are_sorted(self):
        a = _rule("a", "quantity", "customer_tier", "month")
        b = _rule("b", "month", "quantity")
        assert detect_conflicts([a, b])[0].shared_fields == ("month", "quantity")

    def test_empty_input(self):
        assert detect_conflicts([]) == []
