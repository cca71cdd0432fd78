"""Domain models for the Kalkia estimation engine."""

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
from kalkia.models.enums import (
    FactorValueType,
    NodeType,
    PriceSource,
    RefreshStatus,
    RuleType,
    WarningKind,
)
from kalkia.models.rules import (
    FlagMatchCondition,
    FormulaCondition,
    RuleCondition,
    ThresholdCondition,
)
from kalkia.models.supplier import (
    CustomerProductOverride,
    CustomerSupplierAgreement,
    PriceChange,
    SupplierPriceOverride,
    SupplierProduct,
    SupplierQuote,
    SupplierRefreshOutcome,
    SupplierRefreshReport,
)

__all__ = [
    "BuildingProfile",
    "CalculatedItem",
    "CalculatedMaterial",
    "CalculationItemInput",
    "CalculationOutput",
    "CalculationResult",
    "CalculationWarning",
    "CompositeChild",
    "CustomerProductOverride",
    "CustomerSupplierAgreement",
    "FactorValueType",
    "FactorsUsed",
    "FlagMatchCondition",
    "FormulaCondition",
    "GlobalFactor",
    "Material",
    "Node",
    "NodeType",
    "PriceChange",
    "PriceSource",
    "RefreshStatus",
    "Rule",
    "RuleCondition",
    "RuleType",
    "SupplierPriceOverride",
    "SupplierProduct",
    "SupplierQuote",
    "SupplierRefreshOutcome",
    "SupplierRefreshReport",
    "ThresholdCondition",
    "Variant",
    "WarningKind",
]
