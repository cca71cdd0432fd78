"""Kalkia estimation and pricing engine.

Usage::

    from kalkia import create_default_engine, CalculationItemInput

    engine = create_default_engine()
    output = engine.calculate(
        [CalculationItemInput(node_id="op-socket-double", quantity=4)],
        building_profile_id="bp-house",
        margin_percentage=25,
    )
    print(output.result.final_amount)
"""

from kalkia.composite import CompositeResolver, expand_composite
from kalkia.config import EngineSettings, load_settings
from kalkia.context import CalculationContext, build_context
from kalkia.data.snapshot import CatalogSnapshot
from kalkia.engine import ENGINE_VERSION, KalkiaEngine
from kalkia.exceptions import (
    CyclicReferenceError,
    KalkiaError,
    NotFoundError,
    RuleEvaluationWarning,
    SupplierRefreshError,
    SupplierResolutionError,
    ValidationError,
)
from kalkia.factory import create_default_engine
from kalkia.item_calculator import calculate_item, resolve_variant
from kalkia.models.calculation import (
    CalculatedItem,
    CalculatedMaterial,
    CalculationItemInput,
    CalculationOutput,
    CalculationResult,
    CalculationWarning,
    FactorsUsed,
)
from kalkia.models.catalog import (
    BuildingProfile,
    CompositeChild,
    GlobalFactor,
    Material,
    Node,
    Rule,
    Variant,
)
from kalkia.models.enums import NodeType, PriceSource, RuleType, WarningKind
from kalkia.models.supplier import (
    CustomerProductOverride,
    CustomerSupplierAgreement,
    SupplierPriceOverride,
    SupplierProduct,
)
from kalkia.pricing import aggregate, calculate_db_metrics
from kalkia.supplier_prices import (
    build_supplier_price_map,
    is_stale,
    resolve_material_price,
)

__all__ = [
    "ENGINE_VERSION",
    "BuildingProfile",
    "CalculatedItem",
    "CalculatedMaterial",
    "CalculationContext",
    "CalculationItemInput",
    "CalculationOutput",
    "CalculationResult",
    "CalculationWarning",
    "CatalogSnapshot",
    "CompositeChild",
    "CompositeResolver",
    "CustomerProductOverride",
    "CustomerSupplierAgreement",
    "CyclicReferenceError",
    "EngineSettings",
    "FactorsUsed",
    "GlobalFactor",
    "KalkiaEngine",
    "KalkiaError",
    "Material",
    "Node",
    "NodeType",
    "NotFoundError",
    "PriceSource",
    "Rule",
    "RuleEvaluationWarning",
    "RuleType",
    "SupplierPriceOverride",
    "SupplierProduct",
    "SupplierRefreshError",
    "SupplierResolutionError",
    "ValidationError",
    "Variant",
    "WarningKind",
    "aggregate",
    "build_context",
    "build_supplier_price_map",
    "calculate_db_metrics",
    "calculate_item",
    "create_default_engine",
    "expand_composite",
    "is_stale",
    "load_settings",
    "resolve_material_price",
    "resolve_variant",
]
