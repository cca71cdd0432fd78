"""FastAPI application — create_app factory with /api endpoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Load .env from project root (backend/../.env or backend/.env)
_backend_dir = Path(__file__).resolve().parent.parent.parent
_project_root = _backend_dir.parent
load_dotenv(_project_root / ".env")
load_dotenv(_backend_dir / ".env")

from kalkia.engine import ENGINE_VERSION
from kalkia.exceptions import (
    CyclicReferenceError,
    KalkiaError,
    NotFoundError,
    ValidationError,
)
from kalkia.models.calculation import CalculationItemInput  # noqa: TCH001 (FastAPI resolves at runtime)
from kalkia.models.supplier import SupplierPriceOverride  # noqa: TCH001 (FastAPI resolves at runtime)

if TYPE_CHECKING:
    from kalkia.engine import KalkiaEngine

logger = logging.getLogger(__name__)


class CalculateRequest(BaseModel):
    """Body of POST /api/calculate."""

    items: list[CalculationItemInput] = Field(min_length=1)
    building_profile_id: str | None = None
    hourly_rate: float | None = None
    sale_hourly_rate: float | None = None
    margin_percentage: float = 0.0
    discount_percentage: float = 0.0
    vat_percentage: float | None = None
    risk_percentage: float = 0.0
    overhead_percentage: float | None = None
    supplier_prices: dict[str, SupplierPriceOverride] = Field(default_factory=dict)


def _http_error(exc: KalkiaError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationError | CyclicReferenceError):
        return HTTPException(status_code=422, detail=str(exc))
    logger.exception("Unexpected engine error during calculation")
    return HTTPException(status_code=500, detail=str(exc))


def create_app(*, engine: KalkiaEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    engine
        Optional pre-built engine for dependency injection (e.g. tests).
        If not provided, one is created via create_default_engine on first
        request.
    """
    app = FastAPI(title="Kalkia", version=ENGINE_VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store on app state so tests can inject their own catalog
    app.state.engine = engine

    def _get_engine() -> KalkiaEngine:
        eng: KalkiaEngine | None = app.state.engine
        if eng is not None:
            return eng
        from kalkia.factory import create_default_engine

        eng = create_default_engine()
        app.state.engine = eng
        return eng

    # ------------------------------------------------------------------
    # GET /api/health
    # ------------------------------------------------------------------

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": ENGINE_VERSION}

    # ------------------------------------------------------------------
    # GET /api/building-profiles
    # ------------------------------------------------------------------

    @app.get("/api/building-profiles")
    def building_profiles() -> list[dict[str, Any]]:
        engine = _get_engine()
        return [
            p.model_dump(mode="json")
            for p in engine.snapshot.building_profiles
            if p.is_active
        ]

    # ------------------------------------------------------------------
    # POST /api/calculate
    # ------------------------------------------------------------------

    @app.post("/api/calculate")
    def calculate(body: CalculateRequest) -> dict[str, Any]:
        engine = _get_engine()
        try:
            output = engine.calculate(
                body.items,
                building_profile_id=body.building_profile_id,
                hourly_rate=body.hourly_rate,
                margin_percentage=body.margin_percentage,
                discount_percentage=body.discount_percentage,
                vat_percentage=body.vat_percentage,
                risk_percentage=body.risk_percentage,
                overhead_percentage=body.overhead_percentage,
                supplier_prices=body.supplier_prices,
                sale_hourly_rate=body.sale_hourly_rate,
            )
        except KalkiaError as exc:
            raise _http_error(exc) from exc
        return output.model_dump(mode="json")

    return app
