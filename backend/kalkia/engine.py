"""Core calculation engine for the Kalkia estimation library.

The KalkiaEngine prices a list of catalog items against a catalog snapshot:

1. **Context** — Look up the building profile and assemble one immutable
   CalculationContext (hourly rates, profile multipliers, global factors,
   resolved supplier prices) shared by every item.
2. **Expansion** — Operation items are priced by the item calculator;
   composite and group items are expanded into leaf items by the composite
   resolver.
3. **Aggregation** — Sum the leaf items and apply overhead, risk, margin,
   discount and VAT to produce the CalculationResult.

The engine performs no I/O. Validation, not-found and cycle errors abort the
run; per-rule and per-material problems are recovered locally and reported
as warnings on the result.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING

from kalkia.composite import CompositeResolver
from kalkia.config import EngineSettings
from kalkia.context import (
    INDIRECT_TIME_FACTOR,
    MATERIAL_WASTE_FACTOR,
    OVERHEAD_FACTOR,
    PERSONAL_TIME_FACTOR,
    build_context,
)
from kalkia.exceptions import ValidationError
from kalkia.models.calculation import CalculationOutput, FactorsUsed
from kalkia.pricing import aggregate
from kalkia.services.supplier_refresh import SupplierPriceRefresher
from kalkia.supplier_prices import build_supplier_price_map

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from kalkia.data.snapshot import CatalogSnapshot
    from kalkia.models.calculation import CalculatedItem, CalculationItemInput
    from kalkia.models.supplier import (
        CustomerProductOverride,
        CustomerSupplierAgreement,
        SupplierPriceOverride,
        SupplierProduct,
    )
    from kalkia.services.supplier_refresh import SupplierClient

logger = logging.getLogger(__name__)

ENGINE_VERSION = "0.1.0"


class KalkiaEngine:
    """Prices calculation items against an in-memory catalog snapshot.

    Args:
        snapshot: The catalog rows (nodes, variants, materials, rules,
            building profiles, global factors) to calculate against.
        settings: Defaults for hourly rate, VAT and difficulty scaling.

    Example::

        from kalkia import create_default_engine, CalculationItemInput

        engine = create_default_engine()
        output = engine.calculate(
            [CalculationItemInput(node_id="op-socket-double", quantity=4)],
            margin_percentage=25,
        )
        print(output.result.final_amount)
    """

    def __init__(
        self,
        snapshot: CatalogSnapshot,
        settings: EngineSettings | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._settings = settings or EngineSettings()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def resolve_supplier_prices(
        self,
        supplier_products: Mapping[str, SupplierProduct],
        agreements: Iterable[CustomerSupplierAgreement] = (),
        product_overrides: Iterable[CustomerProductOverride] = (),
        *,
        customer_id: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, SupplierPriceOverride]:
        """Resolve supplier prices for every catalog material.

        The staleness window and default material margin come from the
        engine settings. Pass the result as ``supplier_prices`` to
        :meth:`calculate`.
        """
        return build_supplier_price_map(
            self._snapshot.materials,
            supplier_products,
            agreements,
            product_overrides,
            customer_id=customer_id,
            now=now,
            stale_after=timedelta(days=self._settings.stale_after_days),
            default_margin=self._settings.default_material_margin,
        )

    def supplier_refresher(
        self, clients: Mapping[str, SupplierClient]
    ) -> SupplierPriceRefresher:
        """Build a refresher bounded by the configured supplier timeout."""
        return SupplierPriceRefresher(
            clients, timeout_seconds=self._settings.supplier_timeout_seconds
        )

    def calculate(
        self,
        items: Sequence[CalculationItemInput],
        building_profile_id: str | None = None,
        hourly_rate: float | None = None,
        margin_percentage: float = 0.0,
        discount_percentage: float = 0.0,
        vat_percentage: float | None = None,
        risk_percentage: float = 0.0,
        overhead_percentage: float | None = None,
        supplier_prices: Mapping[str, SupplierPriceOverride] | None = None,
        sale_hourly_rate: float | None = None,
    ) -> CalculationOutput:
        """Price ``items`` and aggregate them into a CalculationResult.

        Args:
            items: The lines to price.
            building_profile_id: Optional profile whose multipliers apply to
                every item.
            hourly_rate: Cost-side hourly rate; defaults to the settings.
            margin_percentage: Margin on the sales basis (may exceed 100).
            discount_percentage: Discount on the sale price (0-100).
            vat_percentage: VAT on the net price; defaults to the settings.
            risk_percentage: Risk on cost plus overhead (may exceed 100).
            overhead_percentage: Base overhead on the cost price; defaults to
                the ``overhead`` global factor. Either way it is scaled by the
                profile's overhead multiplier.
            supplier_prices: Material id -> resolved supplier price.
            sale_hourly_rate: Sell-side hourly rate; defaults to the settings,
                then to ``hourly_rate``.

        Returns:
            The calculated leaf items and the aggregated result.

        Raises:
            ValidationError: On a non-positive or non-finite quantity, an
                out-of-range or non-finite percentage or rate, a variant/node
                mismatch, or an inactive node or building profile.
            NotFoundError: If a node, variant or the building profile is
                absent from the snapshot.
            CyclicReferenceError: If a composite node graph has a cycle.
        """
        profile = (
            self._snapshot.get_building_profile(building_profile_id)
            if building_profile_id is not None
            else None
        )
        if profile is not None and not profile.is_active:
            msg = f"Building profile '{profile.id}' is inactive"
            raise ValidationError(msg)
        rate = self._settings.hourly_rate if hourly_rate is None else hourly_rate
        sale_rate = (
            sale_hourly_rate
            if sale_hourly_rate is not None
            else self._settings.sale_hourly_rate
        )

        context = build_context(
            rate,
            profile,
            self._snapshot.global_factors,
            supplier_prices,
            sale_hourly_rate=sale_rate,
            baseline_difficulty=self._settings.baseline_difficulty,
        )

        if overhead_percentage is None:
            overhead_percentage = context.factor(OVERHEAD_FACTOR) * 100.0
        overhead_percentage *= context.overhead_multiplier
        vat = self._settings.vat_percentage if vat_percentage is None else vat_percentage

        resolver = CompositeResolver(self._snapshot, context)
        calculated: list[CalculatedItem] = []
        for item_input in items:
            if not math.isfinite(item_input.quantity) or item_input.quantity <= 0:
                msg = (
                    f"Quantity for node '{item_input.node_id}' must be a finite "
                    f"positive number, got {item_input.quantity}"
                )
                raise ValidationError(msg)
            node = self._snapshot.get_node(item_input.node_id)
            calculated.extend(
                resolver.expand(
                    node,
                    item_input.quantity,
                    conditions=item_input.conditions,
                    variant_id=item_input.variant_id,
                )
            )

        indirect = context.factor(INDIRECT_TIME_FACTOR)
        personal = context.factor(PERSONAL_TIME_FACTOR)
        result = aggregate(
            calculated,
            margin_pct=margin_percentage,
            discount_pct=discount_percentage,
            vat_pct=vat,
            risk_pct=risk_percentage,
            overhead_pct=overhead_percentage,
            hourly_rate=context.hourly_rate,
            indirect_time_factor=indirect,
            personal_time_factor=personal,
            factors_used=FactorsUsed(
                hourly_rate=context.hourly_rate,
                sale_hourly_rate=context.effective_sale_hourly_rate,
                indirect_time_factor=indirect,
                personal_time_factor=personal,
                material_waste_factor=context.factor(MATERIAL_WASTE_FACTOR),
                overhead_percentage=overhead_percentage,
                building_profile_id=context.building_profile_id,
            ),
        )

        logger.info(
            "Calculated %d input items -> %d leaf items, final amount %.2f (%d warnings)",
            len(items),
            len(calculated),
            result.final_amount,
            len(result.warnings),
        )
        return CalculationOutput(items=calculated, result=result)
