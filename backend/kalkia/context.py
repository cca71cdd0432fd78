"""Context builder: one immutable CalculationContext per calculation run."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from kalkia.exceptions import ValidationError
from kalkia.models.supplier import SupplierPriceOverride  # noqa: TCH001 (pydantic resolves at runtime)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from kalkia.models.catalog import BuildingProfile, GlobalFactor

# Global factor keys the engine reads
MATERIAL_WASTE_FACTOR = "material_waste"
INDIRECT_TIME_FACTOR = "indirect_time"
PERSONAL_TIME_FACTOR = "personal_time"
OVERHEAD_FACTOR = "overhead"


class CalculationContext(BaseModel):
    """Settings shared by every item computation in one run.

    Passed explicitly through every call instead of being read from global
    state, so concurrent runs never interfere.
    """

    model_config = ConfigDict(frozen=True)

    hourly_rate: float
    sale_hourly_rate: float | None = None
    building_profile_id: str | None = None
    time_multiplier: float = 1.0
    difficulty_multiplier: float = 1.0
    material_waste_multiplier: float = 1.0
    overhead_multiplier: float = 1.0
    baseline_difficulty: float = 1.0
    global_factors: dict[str, float] = Field(default_factory=dict)
    supplier_prices: dict[str, SupplierPriceOverride] = Field(default_factory=dict)

    @property
    def effective_sale_hourly_rate(self) -> float:
        if self.sale_hourly_rate is None:
            return self.hourly_rate
        return self.sale_hourly_rate

    def factor(self, key: str, default: float = 0.0) -> float:
        return self.global_factors.get(key, default)

    def supplier_price(self, material_id: str) -> SupplierPriceOverride | None:
        return self.supplier_prices.get(material_id)


def build_context(
    hourly_rate: float,
    building_profile: BuildingProfile | None,
    global_factors: Iterable[GlobalFactor],
    supplier_prices: Mapping[str, SupplierPriceOverride] | None = None,
    *,
    sale_hourly_rate: float | None = None,
    baseline_difficulty: float = 1.0,
) -> CalculationContext:
    """Assemble the CalculationContext for a run.

    Absent building-profile multipliers default to 1.0, inactive or absent
    global factors are left out (identity), and active ones are clamped to
    their bounds.

    Raises:
        ValidationError: On a negative or non-finite hourly rate or sale
            rate, or a non-positive baseline difficulty.
    """
    if not math.isfinite(hourly_rate) or hourly_rate < 0:
        msg = f"hourly_rate must be a finite non-negative number, got {hourly_rate}"
        raise ValidationError(msg)
    if sale_hourly_rate is not None and (
        not math.isfinite(sale_hourly_rate) or sale_hourly_rate < 0
    ):
        msg = (
            "sale_hourly_rate must be a finite non-negative number, "
            f"got {sale_hourly_rate}"
        )
        raise ValidationError(msg)
    if not math.isfinite(baseline_difficulty) or baseline_difficulty <= 0:
        msg = f"baseline_difficulty must be positive, got {baseline_difficulty}"
        raise ValidationError(msg)

    factors = {
        f.factor_key: f.resolved_value() for f in global_factors if f.is_active
    }

    return CalculationContext(
        hourly_rate=hourly_rate,
        sale_hourly_rate=sale_hourly_rate,
        building_profile_id=building_profile.id if building_profile else None,
        time_multiplier=building_profile.time_multiplier if building_profile else 1.0,
        difficulty_multiplier=(
            building_profile.difficulty_multiplier if building_profile else 1.0
        ),
        material_waste_multiplier=(
            building_profile.material_waste_multiplier if building_profile else 1.0
        ),
        overhead_multiplier=(
            building_profile.overhead_multiplier if building_profile else 1.0
        ),
        baseline_difficulty=baseline_difficulty,
        global_factors=factors,
        supplier_prices=dict(supplier_prices or {}),
    )
