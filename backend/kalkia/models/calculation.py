"""Calculation input and output models for the Kalkia engine."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from kalkia.models.enums import PriceSource, WarningKind


class CalculationItemInput(BaseModel):
    """One line requested by the caller.

    ``quantity`` is checked by the engine rather than by the model so that a
    non-positive quantity surfaces as :class:`kalkia.exceptions.ValidationError`
    naming the node.
    """

    node_id: str
    variant_id: str | None = None
    quantity: float = 1.0
    conditions: dict[str, Any] = Field(default_factory=dict)


class CalculationWarning(BaseModel):
    """A recoverable issue recorded instead of failing the calculation."""

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    node_id: str | None = None
    rule_id: str | None = None
    material_id: str | None = None


class CalculatedMaterial(BaseModel):
    """Per-material breakdown of an item's material cost."""

    model_config = ConfigDict(frozen=True)

    material_id: str
    name: str
    quantity: float
    unit: str
    unit_cost: float
    unit_sale: float
    total_cost: float
    total_sale: float
    price_source: PriceSource | None = None
    supplier_product_id: str | None = None


class CalculatedItem(BaseModel):
    """The priced result of one leaf (operation) item."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    variant_id: str | None
    quantity: float
    description: str = ""
    base_time_seconds: float = 0.0
    resolved_time_seconds: float
    material_cost: float
    material_waste: float = 0.0
    material_sale: float
    reference_sale: float = 0.0
    labor_cost: float
    labor_sale: float
    rules_applied: list[str] = Field(default_factory=list)
    materials: list[CalculatedMaterial] = Field(default_factory=list)
    source_path: list[str] = Field(default_factory=list)
    warnings: list[CalculationWarning] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cost(self) -> float:
        return self.material_cost + self.labor_cost

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_sale(self) -> float:
        return self.material_sale + self.labor_sale


class FactorsUsed(BaseModel):
    """Snapshot of the factors a result was computed with."""

    model_config = ConfigDict(frozen=True)

    hourly_rate: float = 0.0
    sale_hourly_rate: float = 0.0
    indirect_time_factor: float = 0.0
    personal_time_factor: float = 0.0
    material_waste_factor: float = 0.0
    overhead_percentage: float = 0.0
    building_profile_id: str | None = None


class CalculationResult(BaseModel):
    """Aggregated totals for a calculation run. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    # Time totals
    total_direct_time_seconds: float
    total_indirect_time_seconds: float = 0.0
    total_personal_time_seconds: float = 0.0
    total_labor_time_seconds: float
    total_labor_hours: float

    # Cost totals
    total_material_cost: float
    total_material_waste: float = 0.0
    total_labor_cost: float
    total_other_costs: float = 0.0
    cost_price: float

    # Pricing breakdown
    overhead_percentage: float
    overhead_amount: float
    risk_percentage: float
    risk_amount: float
    sales_basis: float
    margin_percentage: float
    margin_amount: float
    sale_price_excl_vat: float
    discount_percentage: float
    discount_amount: float
    net_price: float
    vat_percentage: float
    vat_amount: float
    final_amount: float

    # Key metrics
    db_amount: float
    db_percentage: float
    db_per_hour: float
    coverage_ratio: float

    # Catalog-default sale total, for comparison only
    reference_sale_price: float = 0.0

    factors_used: FactorsUsed = Field(default_factory=FactorsUsed)
    warnings: list[CalculationWarning] = Field(default_factory=list)


class CalculationOutput(BaseModel):
    """Everything one engine invocation returns."""

    model_config = ConfigDict(frozen=True)

    items: list[CalculatedItem]
    result: CalculationResult
