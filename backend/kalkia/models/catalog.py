"""Catalog domain models: nodes, variants, materials, rules and profiles.

These are read-only inputs for a calculation run. They mirror the rows the
catalog administration screens maintain, already fetched into memory.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from kalkia.models.enums import FactorValueType, NodeType, RuleType


class CompositeChild(BaseModel):
    """One weighted line in a composite node's bill of nodes."""

    child_node_id: str
    quantity_multiplier: float = Field(default=1.0, gt=0)
    variant_id: str | None = None


class Node(BaseModel):
    """A catalog entry: structural group, billable operation or composite."""

    id: str
    code: str
    name: str
    node_type: NodeType = NodeType.OPERATION
    path: str = ""
    depth: int = Field(default=0, ge=0)
    parent_id: str | None = None
    description: str | None = None
    base_time_seconds: float = Field(default=0.0, ge=0)
    default_cost_price: float = Field(default=0.0, ge=0)
    default_sale_price: float = Field(default=0.0, ge=0)
    difficulty_level: float = Field(default=1.0, ge=0)
    is_active: bool = True
    sort_order: int = 0
    composite_children: list[CompositeChild] = Field(default_factory=list)

    @field_validator("path")
    @classmethod
    def path_has_no_empty_segments(cls, v: str) -> str:
        if v and any(segment == "" for segment in v.split(".")):
            msg = f"path '{v}' contains an empty segment"
            raise ValueError(msg)
        return v

    @property
    def is_composite(self) -> bool:
        return self.node_type == NodeType.COMPOSITE

    @property
    def is_group(self) -> bool:
        return self.node_type == NodeType.GROUP


class Variant(BaseModel):
    """A configuration of a node altering its time and cost multipliers."""

    id: str
    node_id: str
    code: str = ""
    name: str = ""
    time_multiplier: float = Field(default=1.0, ge=0)
    extra_time_seconds: float = 0.0
    price_multiplier: float = Field(default=1.0, ge=0)
    cost_multiplier: float = Field(default=1.0, ge=0)
    waste_percentage: float = Field(default=0.0, ge=0)
    is_default: bool = False
    sort_order: int = 0


class Material(BaseModel):
    """A material line attached to a variant."""

    id: str
    variant_id: str
    name: str = ""
    quantity: float = Field(default=1.0, ge=0)
    unit: str = "stk"
    cost_price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    is_optional: bool = False
    supplier_product_id: str | None = None
    sort_order: int = 0


class Rule(BaseModel):
    """A conditional adjustment to a node's (or variant's) time and cost.

    ``condition`` is kept as raw data and parsed lazily by
    :mod:`kalkia.rules`, so one malformed rule can be skipped without
    rejecting the whole catalog snapshot.
    """

    id: str
    node_id: str | None = None
    variant_id: str | None = None
    name: str = ""
    rule_type: RuleType | None = None
    condition: dict[str, Any] = Field(default_factory=dict)
    time_multiplier: float = 1.0
    extra_time_seconds: float = 0.0
    cost_multiplier: float = 1.0
    extra_cost: float = 0.0
    sort_order: int = 0
    is_active: bool = True


class BuildingProfile(BaseModel):
    """Multiplier bundle reflecting site conditions (old building, new-build)."""

    id: str
    code: str = ""
    name: str = ""
    description: str | None = None
    time_multiplier: float = Field(default=1.0, ge=0)
    difficulty_multiplier: float = Field(default=1.0, ge=0)
    material_waste_multiplier: float = Field(default=1.0, ge=0)
    overhead_multiplier: float = Field(default=1.0, ge=0)
    is_active: bool = True


class GlobalFactor(BaseModel):
    """A named, bounded numeric adjustment applied across all calculations."""

    id: str
    factor_key: str
    name: str = ""
    value_type: FactorValueType = FactorValueType.MULTIPLIER
    value: float
    min_value: float | None = None
    max_value: float | None = None
    is_active: bool = True

    def resolved_value(self) -> float:
        """Clamp to the configured bounds; percentages become fractions."""
        value = self.value
        if self.min_value is not None:
            value = max(value, self.min_value)
        if self.max_value is not None:
            value = min(value, self.max_value)
        if self.value_type == FactorValueType.PERCENTAGE:
            return value / 100.0
        return value
