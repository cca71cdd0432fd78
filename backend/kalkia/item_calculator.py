"""Item calculator: prices one leaf catalog item.

For a node, its resolved variant, the variant's materials and the node's
rules, the calculator produces a :class:`CalculatedItem`:

1. **Base time** — ``node.base_time_seconds * variant.time_multiplier +
   variant.extra_time_seconds``.
2. **Rules** — matching rules adjust time (and material cost) cumulatively in
   ascending sort order.
3. **Building profile** — time multiplier and a difficulty multiplier scaled
   by the node's difficulty level, then multiplied by the quantity.
4. **Materials** — supplier override or catalog price, waste uplift on the
   cost side only, times material quantity and item quantity.
5. **Labor** — hours at the cost rate and at the sale rate.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from kalkia.context import MATERIAL_WASTE_FACTOR
from kalkia.exceptions import NotFoundError, ValidationError
from kalkia.models.calculation import (
    CalculatedItem,
    CalculatedMaterial,
    CalculationWarning,
)
from kalkia.models.enums import WarningKind
from kalkia.rules import apply_rules

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from kalkia.context import CalculationContext
    from kalkia.models.calculation import CalculationItemInput
    from kalkia.models.catalog import Material, Node, Rule, Variant

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


def resolve_variant(
    node: Node,
    variants: Sequence[Variant],
    variant_id: str | None = None,
) -> Variant | None:
    """Pick the variant to price a node with.

    An explicit ``variant_id`` must exist and belong to ``node``; otherwise
    the default variant, then the first variant, is used. Returns None when
    the node has no variants at all.

    Raises:
        NotFoundError: If ``variant_id`` is not among the known variants.
        ValidationError: If ``variant_id`` belongs to a different node.
    """
    if variant_id is not None:
        for variant in variants:
            if variant.id == variant_id:
                if variant.node_id != node.id:
                    msg = (
                        f"Variant '{variant_id}' belongs to node "
                        f"'{variant.node_id}', not '{node.id}'"
                    )
                    raise ValidationError(msg)
                return variant
        raise NotFoundError("variant", variant_id)

    own = [v for v in variants if v.node_id == node.id]
    for variant in own:
        if variant.is_default:
            return variant
    return own[0] if own else None


def _optional_requested(material: Material, conditions: Mapping[str, Any]) -> bool:
    if conditions.get("include_optional") is True:
        return True
    requested = conditions.get("optional_materials") or ()
    return material.id in requested


def calculate_item(
    node: Node,
    variant: Variant | None,
    materials: Sequence[Material],
    rules: Sequence[Rule],
    item_input: CalculationItemInput,
    context: CalculationContext,
    source_path: Sequence[str] = (),
) -> CalculatedItem:
    """Calculate time, material and labor figures for one leaf item.

    Args:
        node: The operation node being priced.
        variant: Resolved variant, or None for a zero-material operation
            priced from node defaults.
        materials: The variant's materials.
        rules: Rules bound to the node or variant.
        item_input: Quantity and ad-hoc conditions for this line.
        context: Shared settings for the calculation run.
        source_path: Composite node ids this item was expanded from.

    Raises:
        ValidationError: If the quantity is not positive or the variant
            belongs to another node.
    """
    quantity = item_input.quantity
    if not math.isfinite(quantity) or quantity <= 0:
        msg = (
            f"Quantity for node '{node.id}' must be a finite positive number, "
            f"got {quantity}"
        )
        raise ValidationError(msg)
    if variant is not None and variant.node_id != node.id:
        msg = (
            f"Variant '{variant.id}' belongs to node '{variant.node_id}', "
            f"not '{node.id}'"
        )
        raise ValidationError(msg)

    conditions = item_input.conditions
    warnings: list[CalculationWarning] = []

    # 1. Base time per unit
    time_multiplier = variant.time_multiplier if variant else 1.0
    extra_time = variant.extra_time_seconds if variant else 0.0
    base_time = node.base_time_seconds * time_multiplier + extra_time

    # 2. Rules
    outcome = apply_rules(rules, base_time, conditions, quantity, node_id=node.id)
    warnings.extend(outcome.warnings)

    # 3. Building profile, then quantity
    difficulty_scale = context.difficulty_multiplier ** (
        node.difficulty_level / context.baseline_difficulty
    )
    unit_time = outcome.time_seconds * context.time_multiplier * difficulty_scale
    total_time = unit_time * quantity

    # 4. Materials
    waste_fraction = (
        (variant.waste_percentage / 100.0 if variant else 0.0)
        + context.factor(MATERIAL_WASTE_FACTOR)
    ) * context.material_waste_multiplier
    cost_multiplier = variant.cost_multiplier if variant else 1.0
    price_multiplier = variant.price_multiplier if variant else 1.0

    lines: list[CalculatedMaterial] = []
    material_cost = 0.0
    material_waste = 0.0
    material_sale = 0.0
    for material in materials if variant else ():
        if material.is_optional and not _optional_requested(material, conditions):
            continue

        override = context.supplier_price(material.id)
        if override is not None:
            unit_cost = override.effective_cost_price
            unit_sale = override.effective_sale_price
            if override.is_stale:
                warnings.append(
                    CalculationWarning(
                        kind=WarningKind.STALE_SUPPLIER_PRICE,
                        message=(
                            f"Supplier price for material '{material.id}' "
                            "has not been synced recently"
                        ),
                        node_id=node.id,
                        material_id=material.id,
                    )
                )
            for reason in override.fallback_reasons:
                warnings.append(
                    CalculationWarning(
                        kind=WarningKind.SUPPLIER_FALLBACK,
                        message=reason,
                        node_id=node.id,
                        material_id=material.id,
                    )
                )
        else:
            raw_cost = material.cost_price if material.cost_price is not None else 0.0
            raw_sale = (
                material.sale_price if material.sale_price is not None else raw_cost
            )
            unit_cost = raw_cost * cost_multiplier
            unit_sale = raw_sale * price_multiplier

        line_quantity = material.quantity * quantity
        line_cost = unit_cost * line_quantity
        line_sale = unit_sale * line_quantity
        material_cost += line_cost
        material_waste += line_cost * waste_fraction
        material_sale += line_sale
        lines.append(
            CalculatedMaterial(
                material_id=material.id,
                name=material.name,
                quantity=line_quantity,
                unit=material.unit,
                unit_cost=unit_cost,
                unit_sale=unit_sale,
                total_cost=line_cost,
                total_sale=line_sale,
                price_source=override.price_source if override else None,
                supplier_product_id=(
                    override.supplier_product_id
                    if override
                    else material.supplier_product_id
                ),
            )
        )

    material_with_waste = material_cost + material_waste
    adjusted_material_cost = (
        material_with_waste * outcome.cost_multiplier + outcome.extra_cost * quantity
    )

    reference_sale = node.default_sale_price * quantity * price_multiplier

    # 5. Labor
    hours = total_time / SECONDS_PER_HOUR
    labor_cost = hours * context.hourly_rate
    labor_sale = hours * context.effective_sale_hourly_rate

    description = f"{node.name} - {variant.name}" if variant and variant.name else node.name

    logger.debug(
        "Calculated node %s x%s: %.0fs, material %.2f, labor %.2f",
        node.id,
        quantity,
        total_time,
        adjusted_material_cost,
        labor_cost,
    )

    return CalculatedItem(
        node_id=node.id,
        variant_id=variant.id if variant else None,
        quantity=quantity,
        description=description,
        base_time_seconds=base_time * quantity,
        resolved_time_seconds=total_time,
        material_cost=max(adjusted_material_cost, 0.0),
        material_waste=material_waste,
        material_sale=material_sale,
        reference_sale=reference_sale,
        labor_cost=labor_cost,
        labor_sale=labor_sale,
        rules_applied=outcome.rules_applied,
        materials=lines,
        source_path=list(source_path),
        warnings=warnings,
    )
