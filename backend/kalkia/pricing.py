"""Pricing aggregator: rolls calculated items up into a CalculationResult.

The canonical sale price is cost-plus: cost price, then overhead, risk and
margin on top, then discount and VAT. The sum of catalog default sale prices
(``node.default_sale_price`` per item) is reported alongside as
``reference_sale_price`` for comparison only.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from kalkia.exceptions import ValidationError
from kalkia.models.calculation import CalculationResult, FactorsUsed

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from kalkia.models.calculation import CalculatedItem, CalculationWarning

SECONDS_PER_HOUR = 3600.0


def _check_percentage(name: str, value: float, *, capped: bool) -> None:
    if not math.isfinite(value):
        msg = f"{name} must be a finite number, got {value}"
        raise ValidationError(msg)
    if value < 0:
        msg = f"{name} must be non-negative, got {value}"
        raise ValidationError(msg)
    if capped and value > 100:
        msg = f"{name} must be between 0 and 100, got {value}"
        raise ValidationError(msg)


def aggregate(
    items: Sequence[CalculatedItem],
    margin_pct: float = 0.0,
    discount_pct: float = 0.0,
    vat_pct: float = 25.0,
    risk_pct: float = 0.0,
    overhead_pct: float = 0.0,
    *,
    hourly_rate: float = 0.0,
    indirect_time_factor: float = 0.0,
    personal_time_factor: float = 0.0,
    factors_used: FactorsUsed | None = None,
    warnings: Iterable[CalculationWarning] = (),
) -> CalculationResult:
    """Aggregate items and apply overhead, risk, margin, discount and VAT.

    Margin and risk may exceed 100 %; discount, VAT and overhead may not.
    Indirect and personal time (fractions of direct time) are costed at
    ``hourly_rate`` and reported as other costs.

    Raises:
        ValidationError: If a percentage is not finite, negative or out of
            range.
    """
    _check_percentage("margin_percentage", margin_pct, capped=False)
    _check_percentage("risk_percentage", risk_pct, capped=False)
    _check_percentage("discount_percentage", discount_pct, capped=True)
    _check_percentage("vat_percentage", vat_pct, capped=True)
    _check_percentage("overhead_percentage", overhead_pct, capped=True)
    if not all(
        math.isfinite(v) and v >= 0
        for v in (hourly_rate, indirect_time_factor, personal_time_factor)
    ):
        msg = (
            "hourly rate and indirect/personal time factors must be finite "
            "and non-negative"
        )
        raise ValidationError(msg)

    # 1. Item totals
    total_direct_time = sum(item.resolved_time_seconds for item in items)
    total_material_cost = sum(item.material_cost for item in items)
    total_material_waste = sum(item.material_waste for item in items)
    total_labor_cost = sum(item.labor_cost for item in items)
    reference_sale_price = sum(item.reference_sale for item in items)

    total_indirect_time = total_direct_time * indirect_time_factor
    total_personal_time = total_direct_time * personal_time_factor
    total_labor_time = total_direct_time + total_indirect_time + total_personal_time
    total_labor_hours = total_labor_time / SECONDS_PER_HOUR

    # 2. Cost price
    total_other_costs = (
        (total_indirect_time + total_personal_time) / SECONDS_PER_HOUR * hourly_rate
    )
    cost_price = total_material_cost + total_labor_cost + total_other_costs

    # 3-5. Overhead, risk, sales basis
    overhead_amount = cost_price * overhead_pct / 100.0
    risk_amount = (cost_price + overhead_amount) * risk_pct / 100.0
    sales_basis = cost_price + overhead_amount + risk_amount

    # 6. Margin
    margin_amount = sales_basis * margin_pct / 100.0
    sale_price_excl_vat = sales_basis + margin_amount

    # 7. Discount
    discount_amount = sale_price_excl_vat * discount_pct / 100.0
    net_price = sale_price_excl_vat - discount_amount

    # 8. VAT
    vat_amount = net_price * vat_pct / 100.0
    final_amount = net_price + vat_amount

    # 9. Profitability
    db_amount, db_percentage, db_per_hour = calculate_db_metrics(
        net_price, cost_price, total_labor_hours
    )
    coverage_ratio = net_price / cost_price if cost_price > 0 else 0.0

    collected = [w for item in items for w in item.warnings]
    collected.extend(warnings)

    return CalculationResult(
        total_direct_time_seconds=total_direct_time,
        total_indirect_time_seconds=total_indirect_time,
        total_personal_time_seconds=total_personal_time,
        total_labor_time_seconds=total_labor_time,
        total_labor_hours=total_labor_hours,
        total_material_cost=total_material_cost,
        total_material_waste=total_material_waste,
        total_labor_cost=total_labor_cost,
        total_other_costs=total_other_costs,
        cost_price=cost_price,
        overhead_percentage=overhead_pct,
        overhead_amount=overhead_amount,
        risk_percentage=risk_pct,
        risk_amount=risk_amount,
        sales_basis=sales_basis,
        margin_percentage=margin_pct,
        margin_amount=margin_amount,
        sale_price_excl_vat=sale_price_excl_vat,
        discount_percentage=discount_pct,
        discount_amount=discount_amount,
        net_price=net_price,
        vat_percentage=vat_pct,
        vat_amount=vat_amount,
        final_amount=final_amount,
        db_amount=db_amount,
        db_percentage=db_percentage,
        db_per_hour=db_per_hour,
        coverage_ratio=coverage_ratio,
        reference_sale_price=reference_sale_price,
        factors_used=factors_used or FactorsUsed(
            hourly_rate=hourly_rate,
            indirect_time_factor=indirect_time_factor,
            personal_time_factor=personal_time_factor,
            overhead_percentage=overhead_pct,
        ),
        warnings=collected,
    )


def calculate_db_metrics(
    net_price: float,
    cost_price: float,
    labor_hours: float,
) -> tuple[float, float, float]:
    """Return (db_amount, db_percentage, db_per_hour) for standalone figures."""
    db_amount = net_price - cost_price
    db_percentage = db_amount / net_price * 100.0 if net_price > 0 else 0.0
    db_per_hour = db_amount / labor_hours if labor_hours > 0 else 0.0
    return db_amount, db_percentage, db_per_hour
