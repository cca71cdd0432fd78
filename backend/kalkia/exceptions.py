"""Custom exception hierarchy for the Kalkia estimation engine."""

from __future__ import annotations


class KalkiaError(Exception):
    """Base exception for all Kalkia errors."""


class ValidationError(KalkiaError, ValueError):
    """Raised for malformed or out-of-range numeric input."""


class NotFoundError(KalkiaError, LookupError):
    """Raised when a referenced entity is absent from the catalog snapshot."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found in catalog snapshot")


class CyclicReferenceError(KalkiaError):
    """Raised when a composite node graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            "Composite node cycle detected: " + " -> ".join(self.cycle)
        )


class RuleEvaluationWarning(KalkiaError):
    """Raised for a single malformed rule; the rule is skipped, not fatal."""

    def __init__(self, rule_id: str, reason: str) -> None:
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"Rule '{rule_id}' skipped: {reason}")


class SupplierResolutionError(KalkiaError):
    """Raised when one price source cannot be used for a material."""


class SupplierRefreshError(KalkiaError):
    """Raised when a supplier price refresh call fails."""
