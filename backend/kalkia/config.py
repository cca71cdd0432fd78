"""Engine settings loaded from the environment.

Values are read from ``KALKIA_*`` environment variables after a ``.env``
file (backend/.env, then the project root) has been loaded.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from kalkia.exceptions import ValidationError

logger = logging.getLogger(__name__)

_backend_dir = Path(__file__).resolve().parent.parent
_project_root = _backend_dir.parent

DEFAULT_HOURLY_RATE = 495.0
DEFAULT_VAT_PERCENTAGE = 25.0
DEFAULT_MATERIAL_MARGIN = 25.0
DEFAULT_STALE_AFTER_DAYS = 7
DEFAULT_SUPPLIER_TIMEOUT_SECONDS = 30.0


class EngineSettings(BaseModel):
    """Defaults used when a caller does not supply a value explicitly."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    hourly_rate: float = Field(default=DEFAULT_HOURLY_RATE, ge=0)
    sale_hourly_rate: float | None = Field(default=None, ge=0)
    vat_percentage: float = Field(default=DEFAULT_VAT_PERCENTAGE, ge=0, le=100)
    default_material_margin: float = Field(default=DEFAULT_MATERIAL_MARGIN, ge=0)
    stale_after_days: int = Field(default=DEFAULT_STALE_AFTER_DAYS, ge=0)
    supplier_timeout_seconds: float = Field(
        default=DEFAULT_SUPPLIER_TIMEOUT_SECONDS, gt=0
    )
    baseline_difficulty: float = Field(default=1.0, gt=0)


_ENV_FIELDS: dict[str, str] = {
    "KALKIA_HOURLY_RATE": "hourly_rate",
    "KALKIA_SALE_HOURLY_RATE": "sale_hourly_rate",
    "KALKIA_VAT_PERCENTAGE": "vat_percentage",
    "KALKIA_DEFAULT_MATERIAL_MARGIN": "default_material_margin",
    "KALKIA_STALE_AFTER_DAYS": "stale_after_days",
    "KALKIA_SUPPLIER_TIMEOUT_SECONDS": "supplier_timeout_seconds",
    "KALKIA_BASELINE_DIFFICULTY": "baseline_difficulty",
}


def load_settings(*, use_dotenv: bool = True) -> EngineSettings:
    """Build EngineSettings from ``KALKIA_*`` environment variables.

    Raises:
        ValidationError: If a variable is set but not a valid number, or is
            out of range.
    """
    if use_dotenv:
        load_dotenv(_backend_dir / ".env")
        load_dotenv(_project_root / ".env")

    values: dict[str, float | int] = {}
    for env_var, field_name in _ENV_FIELDS.items():
        raw = os.environ.get(env_var, "").strip()
        if not raw:
            continue
        try:
            values[field_name] = (
                int(raw) if field_name == "stale_after_days" else float(raw)
            )
        except ValueError as exc:
            msg = f"{env_var} must be numeric, got '{raw}'"
            raise ValidationError(msg) from exc

    try:
        settings = EngineSettings(**values)
    except ValueError as exc:
        msg = f"Invalid engine settings: {exc}"
        raise ValidationError(msg) from exc

    logger.debug("Loaded engine settings: %s", settings)
    return settings
