"""Tests for concurrent supplier price refresh — supplier APIs are faked."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from kalkia.exceptions import SupplierRefreshError
from kalkia.models.catalog import Material
from kalkia.models.enums import RefreshStatus
from kalkia.models.supplier import SupplierProduct, SupplierQuote
from kalkia.services.supplier_refresh import HttpSupplierClient, SupplierPriceRefresher
from kalkia.supplier_prices import resolve_material_price

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
LAST_WEEK = NOW - timedelta(days=6)

# ---------------------------------------------------------------------------
# Fakes / helpers
# ---------------------------------------------------------------------------


class FakeSupplierClient:
    """In-memory supplier API with optional delay or failure."""

    def __init__(
        self,
        prices: dict[str, float],
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.prices = prices
        self.delay = delay
        self.error = error
        self.calls: list[list[str]] = []

    async def refresh_prices(self, skus: list[str]) -> dict[str, SupplierQuote]:
        self.calls.append(skus)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {
            sku: SupplierQuote(sku=sku, cost_price=self.prices[sku])
            for sku in skus
            if sku in self.prices
        }


def _product(product_id: str, supplier_id: str, sku: str, cost: float) -> SupplierProduct:
    return SupplierProduct(
        id=product_id,
        supplier_id=supplier_id,
        supplier_sku=sku,
        cost_price=cost,
        last_synced_at=LAST_WEEK,
    )


def _products() -> list[SupplierProduct]:
    return [
        _product("sp-ao-1", "ao", "AO-1", 100.0),
        _product("sp-ao-2", "ao", "AO-2", 50.0),
        _product("sp-lm-1", "lm", "LM-1", 80.0),
    ]


def _by_id(products: list[SupplierProduct]) -> dict[str, SupplierProduct]:
    return {p.id: p for p in products}


# ---------------------------------------------------------------------------
# SupplierPriceRefresher
# ---------------------------------------------------------------------------


class TestSupplierPriceRefresher:
    def test_all_suppliers_refreshed(self) -> None:
        ao = FakeSupplierClient({"AO-1": 110.0, "AO-2": 50.0})
        lm = FakeSupplierClient({"LM-1": 75.0})
        refresher = SupplierPriceRefresher({"ao": ao, "lm": lm})

        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        assert ao.calls == [["AO-1", "AO-2"]]
        assert lm.calls == [["LM-1"]]
        assert [o.status for o in report.outcomes] == [RefreshStatus.OK, RefreshStatus.OK]
        assert report.refreshed_count == 3
        assert report.failed_count == 0

        products = _by_id(report.products)
        assert products["sp-ao-1"].cost_price == 110.0
        assert products["sp-ao-1"].last_synced_at == NOW
        assert products["sp-lm-1"].cost_price == 75.0

    def test_products_keep_input_order(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({"AO-1": 1.0, "AO-2": 2.0}),
                "lm": FakeSupplierClient({"LM-1": 3.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))
        assert [p.id for p in report.products] == ["sp-ao-1", "sp-ao-2", "sp-lm-1"]

    def test_price_changes_recorded(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({"AO-1": 110.0, "AO-2": 50.0}),
                "lm": FakeSupplierClient({"LM-1": 80.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        assert len(report.price_changes) == 1
        change = report.price_changes[0]
        assert change.supplier_product_id == "sp-ao-1"
        assert change.old_cost_price == 100.0
        assert change.new_cost_price == 110.0
        assert change.change_percentage == pytest.approx(10.0)
        assert change.change_source == "api_sync"

    def test_failing_supplier_isolated(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({}, error=SupplierRefreshError("HTTP 503")),
                "lm": FakeSupplierClient({"LM-1": 75.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        outcomes = {o.supplier_id: o for o in report.outcomes}
        assert outcomes["ao"].status == RefreshStatus.FAILED
        assert outcomes["ao"].failed == 2
        assert "503" in (outcomes["ao"].error or "")
        assert outcomes["lm"].status == RefreshStatus.OK
        assert report.failed_suppliers == ["ao"]

        products = _by_id(report.products)
        assert products["sp-ao-1"].sync_failed is True
        assert products["sp-ao-1"].cost_price == 100.0
        assert products["sp-ao-1"].last_synced_at == LAST_WEEK
        assert products["sp-lm-1"].sync_failed is False
        assert products["sp-lm-1"].cost_price == 75.0

    def test_unexpected_exception_isolated(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({}, error=RuntimeError("boom")),
                "lm": FakeSupplierClient({"LM-1": 75.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))
        assert report.failed_suppliers == ["ao"]
        assert report.refreshed_count == 1

    def test_slow_supplier_times_out(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({"AO-1": 1.0, "AO-2": 2.0}, delay=5.0),
                "lm": FakeSupplierClient({"LM-1": 75.0}),
            },
            timeout_seconds=0.05,
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        outcomes = {o.supplier_id: o for o in report.outcomes}
        assert outcomes["ao"].status == RefreshStatus.TIMEOUT
        assert outcomes["lm"].status == RefreshStatus.OK
        assert _by_id(report.products)["sp-ao-2"].sync_failed is True

    def test_missing_sku_is_partial(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({"AO-1": 100.0}),
                "lm": FakeSupplierClient({"LM-1": 80.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        outcomes = {o.supplier_id: o for o in report.outcomes}
        assert outcomes["ao"].status == RefreshStatus.PARTIAL
        assert outcomes["ao"].refreshed == 1
        assert outcomes["ao"].failed == 1
        assert _by_id(report.products)["sp-ao-2"].sync_failed is True

    def test_unconfigured_supplier_fails(self) -> None:
        refresher = SupplierPriceRefresher({"ao": FakeSupplierClient({"AO-1": 1.0, "AO-2": 2.0})})
        report = asyncio.run(refresher.refresh(_products(), now=NOW))
        outcomes = {o.supplier_id: o for o in report.outcomes}
        assert outcomes["lm"].status == RefreshStatus.FAILED
        assert "lm" in (outcomes["lm"].error or "")

    def test_failed_refresh_makes_price_stale(self) -> None:
        refresher = SupplierPriceRefresher(
            {
                "ao": FakeSupplierClient({}, error=SupplierRefreshError("down")),
                "lm": FakeSupplierClient({"LM-1": 80.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))
        material = Material(id="mat-1", variant_id="var-1", supplier_product_id="sp-ao-1")

        override = resolve_material_price(
            material, _by_id(report.products)["sp-ao-1"], None, None, now=NOW
        )
        # Last sync was 6 days ago, inside the 7-day window, but the refresh failed
        assert override.is_stale is True
        assert override.effective_cost_price == 100.0


# ---------------------------------------------------------------------------
# HttpSupplierClient
# ---------------------------------------------------------------------------


class TestHttpSupplierClient:
    def test_posts_skus_and_parses_prices(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "prices": [
                        {"sku": "AO-1", "cost_price": 12.5, "list_price": 20.0},
                        {"sku": "AO-2", "cost_price": 7.0, "is_available": False},
                    ]
                },
            )

        client = HttpSupplierClient(
            "ao",
            "https://supplier.test/api",
            api_key="secret",
            transport=httpx.MockTransport(handler),
        )
        quotes = asyncio.run(client.refresh_prices(["AO-1", "AO-2"]))

        assert seen["path"] == "/api/prices"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"skus": ["AO-1", "AO-2"]}
        assert quotes["AO-1"].cost_price == 12.5
        assert quotes["AO-1"].list_price == 20.0
        assert quotes["AO-2"].is_available is False

    def test_malformed_rows_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"prices": [{"sku": "AO-1", "cost_price": 12.5}, {"sku": "AO-2"}]},
            )

        client = HttpSupplierClient(
            "ao", "https://supplier.test", transport=httpx.MockTransport(handler)
        )
        quotes = asyncio.run(client.refresh_prices(["AO-1", "AO-2"]))
        assert set(quotes) == {"AO-1"}

    def test_http_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        client = HttpSupplierClient(
            "ao", "https://supplier.test", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(SupplierRefreshError, match="ao"):
            asyncio.run(client.refresh_prices(["AO-1"]))

    def test_invalid_json_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")

        client = HttpSupplierClient(
            "ao", "https://supplier.test", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(SupplierRefreshError, match="invalid JSON"):
            asyncio.run(client.refresh_prices(["AO-1"]))

    def test_works_with_refresher(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            skus = json.loads(request.content)["skus"]
            return httpx.Response(
                200, json={"prices": [{"sku": s, "cost_price": 99.0} for s in skus]}
            )

        refresher = SupplierPriceRefresher(
            {
                "ao": HttpSupplierClient(
                    "ao", "https://ao.test", transport=httpx.MockTransport(handler)
                ),
                "lm": FakeSupplierClient({}, error=SupplierRefreshError("down")),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))
        products = _by_id(report.products)
        assert products["sp-ao-1"].cost_price == 99.0
        assert products["sp-ao-2"].cost_price == 99.0
        assert products["sp-lm-1"].sync_failed is True

    def test_http_timeout_raises_timeout_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        client = HttpSupplierClient(
            "ao", "https://supplier.test", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(TimeoutError, match="ao"):
            asyncio.run(client.refresh_prices(["AO-1"]))

    def test_http_timeout_reported_as_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("connect timed out", request=request)

        refresher = SupplierPriceRefresher(
            {
                "ao": HttpSupplierClient(
                    "ao", "https://ao.test", transport=httpx.MockTransport(handler)
                ),
                "lm": FakeSupplierClient({"LM-1": 80.0}),
            }
        )
        report = asyncio.run(refresher.refresh(_products(), now=NOW))

        outcomes = {o.supplier_id: o for o in report.outcomes}
        assert outcomes["ao"].status == RefreshStatus.TIMEOUT
        assert "timed out" in (outcomes["ao"].error or "")
        assert outcomes["lm"].status == RefreshStatus.OK
        assert _by_id(report.products)["sp-ao-1"].sync_failed is True
