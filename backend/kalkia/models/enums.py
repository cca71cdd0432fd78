"""Enums for the Kalkia domain models."""

from enum import StrEnum


class NodeType(StrEnum):
    """Catalog node kinds."""

    GROUP = "group"
    OPERATION = "operation"
    COMPOSITE = "composite"


class RuleType(StrEnum):
    """Legacy rule categories used by older catalog rows."""

    HEIGHT = "height"
    QUANTITY = "quantity"
    ACCESS = "access"
    DISTANCE = "distance"
    CUSTOM = "custom"


class FactorValueType(StrEnum):
    """How a global factor value is interpreted."""

    PERCENTAGE = "percentage"
    MULTIPLIER = "multiplier"
    FIXED = "fixed"


class PriceSource(StrEnum):
    """Provenance of a resolved material price."""

    STANDARD = "standard"
    CUSTOMER_PRODUCT = "customer_product"
    CUSTOMER_SUPPLIER = "customer_supplier"


class WarningKind(StrEnum):
    """Categories of recoverable issues recorded during a calculation."""

    RULE_EVALUATION = "rule_evaluation"
    STALE_SUPPLIER_PRICE = "stale_supplier_price"
    SUPPLIER_FALLBACK = "supplier_fallback"


class RefreshStatus(StrEnum):
    """Outcome of refreshing prices for one supplier."""

    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"
    TIMEOUT = "timeout"
