"""Factory functions for creating pre-configured KalkiaEngine instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kalkia.config import load_settings
from kalkia.data.seed import seed_snapshot
from kalkia.engine import KalkiaEngine

if TYPE_CHECKING:
    from kalkia.config import EngineSettings


def create_default_engine(settings: EngineSettings | None = None) -> KalkiaEngine:
    """Create a KalkiaEngine wired up with the seed catalog.

    Settings default to :func:`kalkia.config.load_settings`, i.e. the
    ``KALKIA_*`` environment variables and ``.env``.

    Example::

        from kalkia import create_default_engine, CalculationItemInput

        engine = create_default_engine()
        output = engine.calculate(
            [CalculationItemInput(node_id="cmp-bathroom")],
            building_profile_id="bp-house",
        )
    """
    return KalkiaEngine(seed_snapshot(), settings or load_settings())
