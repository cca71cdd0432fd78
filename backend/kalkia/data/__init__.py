"""Catalog data layer for the Kalkia estimation engine."""

from kalkia.data.seed import seed_snapshot
from kalkia.data.snapshot import CatalogSnapshot

__all__ = [
    "CatalogSnapshot",
    "seed_snapshot",
]
