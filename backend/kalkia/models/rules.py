"""Rule condition models.

Conditions form a closed tagged union keyed on ``kind``. They are data, not
code: :mod:`kalkia.rules` interprets them with a small fixed evaluator.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator

ComparisonOperator = Literal["lt", "le", "gt", "ge", "eq", "ne"]


class ThresholdCondition(BaseModel):
    """Matches when a numeric condition value lies within [min, max]."""

    kind: Literal["threshold"] = "threshold"
    key: str = "quantity"
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def min_le_max(self) -> ThresholdCondition:
        if self.min is not None and self.max is not None and self.min > self.max:
            msg = f"threshold min {self.min} is greater than max {self.max}"
            raise ValueError(msg)
        return self


class FlagMatchCondition(BaseModel):
    """Matches when every flag equals the corresponding condition value."""

    kind: Literal["flag_match"] = "flag_match"
    flags: dict[str, Any] = Field(min_length=1)


class FormulaCondition(BaseModel):
    """Compares one condition value against a constant."""

    kind: Literal["formula"] = "formula"
    key: str
    operator: ComparisonOperator
    value: float | str | bool


RuleCondition = Annotated[
    ThresholdCondition | FlagMatchCondition | FormulaCondition,
    Field(discriminator="kind"),
]
