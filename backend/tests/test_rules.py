"""Tests for rule-condition parsing and cumulative rule application."""

from __future__ import annotations

from typing import Any

import pytest

from kalkia.exceptions import RuleEvaluationWarning
from kalkia.models.catalog import Rule
from kalkia.models.enums import RuleType, WarningKind
from kalkia.models.rules import FlagMatchCondition, FormulaCondition, ThresholdCondition
from kalkia.rules import apply_rules, condition_matches, parse_condition


def _rule(
    rule_id: str = "r1",
    condition: dict[str, Any] | None = None,
    rule_type: RuleType | None = None,
    **effects: Any,
) -> Rule:
    return Rule(
        id=rule_id,
        node_id="op-1",
        rule_type=rule_type,
        condition=condition or {},
        **effects,
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseCondition:
    def test_tagged_threshold(self) -> None:
        cond = parse_condition(
            _rule(condition={"kind": "threshold", "key": "height", "min": 2.5})
        )
        assert isinstance(cond, ThresholdCondition)
        assert cond.key == "height"
        assert cond.min == 2.5
        assert cond.max is None

    def test_legacy_height_normalised(self) -> None:
        cond = parse_condition(
            _rule(condition={"min_height": 2.8}, rule_type=RuleType.HEIGHT)
        )
        assert isinstance(cond, ThresholdCondition)
        assert cond.key == "height"
        assert cond.min == 2.8

    def test_legacy_access_normalised(self) -> None:
        cond = parse_condition(
            _rule(condition={"type": "lift"}, rule_type=RuleType.ACCESS)
        )
        assert isinstance(cond, FlagMatchCondition)
        assert cond.flags == {"access": "lift"}

    def test_formula(self) -> None:
        cond = parse_condition(
            _rule(
                condition={"kind": "formula", "key": "run_length", "operator": "gt", "value": 25}
            )
        )
        assert isinstance(cond, FormulaCondition)
        assert cond.operator == "gt"

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(RuleEvaluationWarning, match="r1"):
            parse_condition(_rule(condition={"kind": "script", "code": "1 + 1"}))

    def test_missing_kind_rejected(self) -> None:
        with pytest.raises(RuleEvaluationWarning, match="no 'kind'"):
            parse_condition(_rule(condition={"min": 1}))

    def test_inverted_threshold_rejected(self) -> None:
        with pytest.raises(RuleEvaluationWarning, match="malformed threshold"):
            parse_condition(_rule(condition={"kind": "threshold", "min": 5, "max": 1}))

    def test_unsupported_operator_rejected(self) -> None:
        with pytest.raises(RuleEvaluationWarning):
            parse_condition(
                _rule(
                    condition={"kind": "formula", "key": "x", "operator": "in", "value": 1}
                )
            )


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class TestConditionMatches:
    def test_threshold_inclusive_bounds(self) -> None:
        rule = _rule(condition={"kind": "threshold", "key": "height", "min": 2.5, "max": 4})
        assert condition_matches(rule, {"height": 2.5}, 1)
        assert condition_matches(rule, {"height": 4}, 1)
        assert not condition_matches(rule, {"height": 2.4}, 1)
        assert not condition_matches(rule, {"height": 4.1}, 1)

    def test_quantity_key_uses_item_quantity(self) -> None:
        rule = _rule(condition={"kind": "threshold", "min": 10})
        assert condition_matches(rule, {}, 12)
        assert not condition_matches(rule, {}, 5)

    def test_conditions_override_item_quantity(self) -> None:
        rule = _rule(condition={"kind": "threshold", "min": 10})
        assert condition_matches(rule, {"quantity": 20}, 1)

    def test_missing_key_does_not_match(self) -> None:
        rule = _rule(condition={"kind": "threshold", "key": "height", "min": 2.5})
        assert not condition_matches(rule, {}, 1)

    def test_non_numeric_value_raises(self) -> None:
        rule = _rule(condition={"kind": "threshold", "key": "height", "min": 2.5})
        with pytest.raises(RuleEvaluationWarning, match="numeric"):
            condition_matches(rule, {"height": "tall"}, 1)

    def test_flag_match_requires_every_flag(self) -> None:
        rule = _rule(
            condition={"kind": "flag_match", "flags": {"access": "lift", "outdoor": True}}
        )
        assert condition_matches(rule, {"access": "lift", "outdoor": True}, 1)
        assert not condition_matches(rule, {"access": "lift"}, 1)
        assert not condition_matches(rule, {"access": "ladder", "outdoor": True}, 1)

    def test_formula_comparison(self) -> None:
        rule = _rule(
            condition={"kind": "formula", "key": "run_length", "operator": "gt", "value": 25}
        )
        assert condition_matches(rule, {"run_length": 30}, 1)
        assert not condition_matches(rule, {"run_length": 25}, 1)

    def test_formula_incomparable_types_raise(self) -> None:
        rule = _rule(
            condition={"kind": "formula", "key": "run_length", "operator": "lt", "value": 25}
        )
        with pytest.raises(RuleEvaluationWarning, match="cannot compare"):
            condition_matches(rule, {"run_length": "long"}, 1)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


class TestApplyRules:
    def test_rules_applied_in_sort_order_cumulatively(self) -> None:
        always = {"kind": "threshold", "min": 0}
        doubling = _rule("double", always, time_multiplier=2.0, sort_order=0)
        extra = _rule("extra", always, extra_time_seconds=60, sort_order=1)

        # Passed in reverse: sort_order decides, not list position
        outcome = apply_rules([extra, doubling], 100.0, {}, 1)

        assert outcome.time_seconds == pytest.approx(260.0)
        assert outcome.rules_applied == ["double", "extra"]

    def test_non_matching_rule_has_no_effect(self) -> None:
        rule = _rule(
            condition={"kind": "threshold", "key": "height", "min": 3},
            time_multiplier=2.0,
        )
        outcome = apply_rules([rule], 100.0, {"height": 2.4}, 1)
        assert outcome.time_seconds == 100.0
        assert outcome.rules_applied == []

    def test_inactive_rule_ignored(self) -> None:
        rule = _rule(
            condition={"kind": "threshold", "min": 0},
            time_multiplier=2.0,
            is_active=False,
        )
        assert apply_rules([rule], 100.0, {}, 1).time_seconds == 100.0

    def test_cost_effects_accumulate(self) -> None:
        always = {"kind": "threshold", "min": 0}
        outcome = apply_rules(
            [
                _rule("a", always, cost_multiplier=1.1, extra_cost=10.0, sort_order=0),
                _rule("b", always, cost_multiplier=2.0, sort_order=1),
            ],
            100.0,
            {},
            1,
        )
        assert outcome.cost_multiplier == pytest.approx(2.2)
        assert outcome.extra_cost == pytest.approx(20.0)

    def test_malformed_rule_skipped_with_warning(self) -> None:
        good = _rule("good", {"kind": "threshold", "min": 0}, extra_time_seconds=30)
        bad = _rule("bad", {"kind": "threshold", "min": 5, "max": 1}, sort_order=-1)

        outcome = apply_rules([bad, good], 100.0, {}, 1, node_id="op-1")

        assert outcome.time_seconds == pytest.approx(130.0)
        assert outcome.rules_applied == ["good"]
        assert len(outcome.warnings) == 1
        warning = outcome.warnings[0]
        assert warning.kind == WarningKind.RULE_EVALUATION
        assert warning.rule_id == "bad"
        assert warning.node_id == "op-1"

    def test_time_never_negative(self) -> None:
        rule = _rule(condition={"kind": "threshold", "min": 0}, extra_time_seconds=-500)
        assert apply_rules([rule], 100.0, {}, 1).time_seconds == 0.0
