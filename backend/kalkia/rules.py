"""Rule condition parsing and evaluation.

Rule conditions are interpreted by a small fixed evaluator over the closed
condition union in :mod:`kalkia.models.rules`; nothing is ever executed as
an expression. Older catalog rows carry an untagged condition plus a
``rule_type``; those are normalised into the union before validation.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from kalkia.exceptions import RuleEvaluationWarning
from kalkia.models.calculation import CalculationWarning
from kalkia.models.enums import RuleType, WarningKind
from kalkia.models.rules import (
    FlagMatchCondition,
    FormulaCondition,
    RuleCondition,
    ThresholdCondition,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from kalkia.models.catalog import Rule

logger = logging.getLogger(__name__)

_CONDITION_ADAPTER: TypeAdapter[RuleCondition] = TypeAdapter(RuleCondition)

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
    "eq": operator.eq,
    "ne": operator.ne,
}

# Legacy rule_type -> (condition key, min field, max field)
_LEGACY_THRESHOLDS: dict[RuleType, tuple[str, str, str]] = {
    RuleType.HEIGHT: ("height", "min_height", "max_height"),
    RuleType.QUANTITY: ("quantity", "min_quantity", "max_quantity"),
    RuleType.DISTANCE: ("distance", "min_distance", "max_distance"),
}


@dataclass(frozen=True)
class RuleOutcome:
    """Cumulative effect of a node's rules on one item."""

    time_seconds: float
    cost_multiplier: float = 1.0
    extra_cost: float = 0.0
    rules_applied: list[str] = field(default_factory=list)
    warnings: list[CalculationWarning] = field(default_factory=list)


def _normalize_legacy(rule: Rule) -> dict[str, Any]:
    raw = dict(rule.condition)
    if "kind" in raw or rule.rule_type is None:
        return raw

    if rule.rule_type in _LEGACY_THRESHOLDS:
        key, min_field, max_field = _LEGACY_THRESHOLDS[rule.rule_type]
        return {
            "kind": "threshold",
            "key": key,
            "min": raw.get(min_field),
            "max": raw.get(max_field),
        }
    if rule.rule_type == RuleType.ACCESS:
        return {"kind": "flag_match", "flags": {"access": raw.get("type")}}
    return {"kind": "flag_match", "flags": raw}


def parse_condition(rule: Rule) -> ThresholdCondition | FlagMatchCondition | FormulaCondition:
    """Parse a rule's raw condition into the tagged union.

    Raises:
        RuleEvaluationWarning: If the condition is missing or malformed.
    """
    raw = _normalize_legacy(rule)
    if "kind" not in raw:
        raise RuleEvaluationWarning(rule.id, "condition has no 'kind' and no rule_type")
    try:
        return _CONDITION_ADAPTER.validate_python(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        reason = f"malformed {raw.get('kind')} condition ({location}: {first['msg']})"
        raise RuleEvaluationWarning(rule.id, reason) from exc


def _numeric(rule_id: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise RuleEvaluationWarning(
            rule_id, f"condition '{key}' must be numeric, got {value!r}"
        )
    return float(value)


def condition_matches(
    rule: Rule,
    conditions: Mapping[str, Any],
    quantity: float,
) -> bool:
    """Evaluate a rule's condition against an item's conditions.

    A condition whose key is absent from ``conditions`` does not match. The
    ``quantity`` key falls back to the item quantity.

    Raises:
        RuleEvaluationWarning: If the condition cannot be evaluated.
    """
    condition = parse_condition(rule)

    if isinstance(condition, ThresholdCondition):
        value = conditions.get(condition.key)
        if value is None and condition.key == "quantity":
            value = quantity
        if value is None:
            return False
        number = _numeric(rule.id, condition.key, value)
        if condition.min is not None and number < condition.min:
            return False
        return not (condition.max is not None and number > condition.max)

    if isinstance(condition, FlagMatchCondition):
        return all(
            key in conditions and conditions[key] == expected
            for key, expected in condition.flags.items()
        )

    value = conditions.get(condition.key)
    if value is None and condition.key == "quantity":
        value = quantity
    if value is None:
        return False
    try:
        return bool(_OPERATORS[condition.operator](value, condition.value))
    except TypeError as exc:
        raise RuleEvaluationWarning(
            rule.id,
            f"cannot compare {value!r} {condition.operator} {condition.value!r}",
        ) from exc


def apply_rules(
    rules: Iterable[Rule],
    time_seconds: float,
    conditions: Mapping[str, Any],
    quantity: float,
    node_id: str | None = None,
) -> RuleOutcome:
    """Apply active rules in ascending sort order, cumulatively.

    Each matching rule sees the time already adjusted by earlier rules:
    ``time = time * time_multiplier + extra_time_seconds``. Cost effects
    accumulate the same way. A malformed rule is skipped and recorded as a
    warning instead of failing the item.
    """
    adjusted = time_seconds
    cost_multiplier = 1.0
    extra_cost = 0.0
    applied: list[str] = []
    warnings: list[CalculationWarning] = []

    for rule in sorted(
        (r for r in rules if r.is_active), key=lambda r: r.sort_order
    ):
        try:
            matched = condition_matches(rule, conditions, quantity)
        except RuleEvaluationWarning as exc:
            logger.warning("Skipping rule on node %s: %s", node_id, exc)
            warnings.append(
                CalculationWarning(
                    kind=WarningKind.RULE_EVALUATION,
                    message=str(exc),
                    node_id=node_id,
                    rule_id=rule.id,
                )
            )
            continue

        if not matched:
            continue

        adjusted = adjusted * rule.time_multiplier + rule.extra_time_seconds
        cost_multiplier *= rule.cost_multiplier
        extra_cost = extra_cost * rule.cost_multiplier + rule.extra_cost
        applied.append(rule.id)

    return RuleOutcome(
        time_seconds=max(adjusted, 0.0),
        cost_multiplier=cost_multiplier,
        extra_cost=extra_cost,
        rules_applied=applied,
        warnings=warnings,
    )
