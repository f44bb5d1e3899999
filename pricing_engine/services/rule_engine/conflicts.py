"""Static conflict detection over a set of active pricing rules."""

from collections.abc import Sequence

from pricing_engine.services.rule_engine.context import Conflict, Rule

SAME_PRIORITY = "Same priority - may cause unpredictable behavior"
BOTH_STACKABLE = "Both stackable - will apply together"
NON_STACKABLE = "Non-stackable - only one will apply"


def _condition_fields(rule: Rule) -> set[str]:
    return {condition.field for condition in rule.conditions}


def conflict_reason(rule1: Rule, rule2: Rule) -> str:
    if rule1.priority == rule2.priority:
        return SAME_PRIORITY
    if rule1.is_stackable and rule2.is_stackable:
        return BOTH_STACKABLE
    return NON_STACKABLE


def detect_conflicts(active_rules: Sequence[Rule]) -> list[Conflict]:
    """Flag every pair of rules whose conditions test at least one common field.

    This is a coarse overlap check, not a satisfiability test: two rules
    are reported even if their value ranges can never match together. Each
    unordered pair appears at most once, in input order.
    """
    fields = [_condition_fields(rule) for rule in active_rules]
    conflicts: list[Conflict] = []
    for i, rule1 in enumerate(active_rules):
        for j in range(i + 1, len(active_rules)):
            shared = fields[i] & fields[j]
            if not shared:
                continue
            rule2 = active_rules[j]
            conflicts.append(
                Conflict(
                    rule1=rule1,
                    rule2=rule2,
                    reason=conflict_reason(rule1, rule2),
                    shared_fields=tuple(sorted(shared)),
                )
            )
    return conflicts
