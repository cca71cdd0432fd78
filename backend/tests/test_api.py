"""Tests for the FastAPI application over an injected catalog."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from kalkia.api.app import create_app
from kalkia.config import EngineSettings
from kalkia.data.snapshot import CatalogSnapshot
from kalkia.engine import ENGINE_VERSION, KalkiaEngine
from kalkia.models.catalog import (
    BuildingProfile,
    CompositeChild,
    Material,
    Node,
    Variant,
)
from kalkia.models.enums import NodeType

# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------


def _make_snapshot() -> CatalogSnapshot:
    return CatalogSnapshot(
        nodes=[
            Node(id="op-socket", code="SOCKET", name="Stikkontakt", base_time_seconds=600),
            Node(
                id="cmp-loop",
                code="LOOP",
                name="Loop",
                node_type=NodeType.COMPOSITE,
                composite_children=[CompositeChild(child_node_id="cmp-loop")],
            ),
        ],
        variants=[Variant(id="var-socket", node_id="op-socket", is_default=True)],
        materials=[Material(id="mat-socket", variant_id="var-socket", cost_price=100.0)],
        building_profiles=[
            BuildingProfile(id="bp-house", code="HOUSE", name="Parcelhus"),
            BuildingProfile(id="bp-old", code="OLD", name="Udgået", is_active=False),
        ],
    )


@pytest.fixture()
def client() -> TestClient:
    engine = KalkiaEngine(_make_snapshot(), EngineSettings(hourly_rate=495.0))
    return TestClient(create_app(engine=engine))


# ---------------------------------------------------------------------------
# GET endpoints
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": ENGINE_VERSION}


def test_building_profiles_lists_active_only(client: TestClient) -> None:
    resp = client.get("/api/building-profiles")
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()] == ["bp-house"]


# ---------------------------------------------------------------------------
# POST /api/calculate
# ---------------------------------------------------------------------------


def test_calculate_returns_items_and_result(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate",
        json={
            "items": [{"node_id": "op-socket", "quantity": 3}],
            "building_profile_id": "bp-house",
            "margin_percentage": 25,
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["items"]) == 1
    assert data["items"][0]["labor_cost"] == pytest.approx(247.5)
    assert data["items"][0]["total_cost"] == pytest.approx(547.5)
    result = data["result"]
    assert result["cost_price"] == pytest.approx(547.5)
    assert result["final_amount"] == pytest.approx(547.5 * 1.25 * 1.25)
    assert result["factors_used"]["building_profile_id"] == "bp-house"


def test_calculate_unknown_node_is_404(client: TestClient) -> None:
    resp = client.post("/api/calculate", json={"items": [{"node_id": "op-ghost"}]})
    assert resp.status_code == 404
    assert "op-ghost" in resp.json()["detail"]


def test_calculate_unknown_profile_is_404(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate",
        json={"items": [{"node_id": "op-socket"}], "building_profile_id": "bp-nope"},
    )
    assert resp.status_code == 404


def test_calculate_zero_quantity_is_422(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate", json={"items": [{"node_id": "op-socket", "quantity": 0}]}
    )
    assert resp.status_code == 422
    assert "op-socket" in resp.json()["detail"]


def test_calculate_discount_out_of_range_is_422(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate",
        json={"items": [{"node_id": "op-socket"}], "discount_percentage": 150},
    )
    assert resp.status_code == 422


def test_calculate_cycle_is_422(client: TestClient) -> None:
    resp = client.post("/api/calculate", json={"items": [{"node_id": "cmp-loop"}]})
    assert resp.status_code == 422
    assert "cmp-loop -> cmp-loop" in resp.json()["detail"]


def test_calculate_requires_items(client: TestClient) -> None:
    resp = client.post("/api/calculate", json={"items": []})
    assert resp.status_code == 422


def test_calculate_nan_quantity_is_422(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate",
        content='{"items": [{"node_id": "op-socket", "quantity": NaN}]}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422


def test_calculate_inactive_profile_is_422(client: TestClient) -> None:
    resp = client.post(
        "/api/calculate",
        json={"items": [{"node_id": "op-socket"}], "building_profile_id": "bp-old"},
    )
    assert resp.status_code == 422
    assert "bp-old" in resp.json()["detail"]
