"""Live supplier price refresh: one concurrent batch request per supplier.

Runs before an engine invocation when live pricing is requested. Each
supplier call has its own timeout; a failure or timeout for one supplier
only marks that supplier's products stale and never blocks the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from kalkia.config import DEFAULT_SUPPLIER_TIMEOUT_SECONDS
from kalkia.exceptions import SupplierRefreshError
from kalkia.models.enums import RefreshStatus
from kalkia.models.supplier import (
    PriceChange,
    SupplierQuote,
    SupplierRefreshOutcome,
    SupplierRefreshReport,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from kalkia.models.supplier import SupplierProduct

logger = logging.getLogger(__name__)


class SupplierClient(Protocol):
    """Anything that can fetch live prices for a batch of SKUs."""

    async def refresh_prices(self, skus: list[str]) -> dict[str, SupplierQuote]: ...


class HttpSupplierClient:
    """Supplier price API client over HTTP.

    Posts ``{"skus": [...]}`` to ``{base_url}/prices`` and expects
    ``{"prices": [{"sku", "cost_price", "list_price", "is_available",
    "lead_time_days"}, ...]}``. Rows that fail validation are skipped.

    Args:
        supplier_id: Supplier the client talks to, used in error messages.
        base_url: Root URL of the supplier API.
        api_key: Optional bearer token.
        timeout_seconds: Per-request HTTP timeout.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        supplier_id: str,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = DEFAULT_SUPPLIER_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.supplier_id = supplier_id
        self._base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._timeout = timeout_seconds
        self._transport = transport

    async def refresh_prices(self, skus: list[str]) -> dict[str, SupplierQuote]:
        """Fetch live prices for ``skus``.

        Raises:
            TimeoutError: If the HTTP request times out.
            SupplierRefreshError: On other transport errors, non-2xx responses
                or a body that is not the expected JSON object.
        """
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/prices", json={"skus": skus})
                response.raise_for_status()
                payload = response.json()
            except httpx.TimeoutException as exc:
                msg = f"Supplier '{self.supplier_id}' price request timed out: {exc}"
                raise TimeoutError(msg) from exc
            except httpx.HTTPError as exc:
                msg = f"Supplier '{self.supplier_id}' price request failed: {exc}"
                raise SupplierRefreshError(msg) from exc
            except ValueError as exc:
                msg = f"Supplier '{self.supplier_id}' returned invalid JSON"
                raise SupplierRefreshError(msg) from exc

        if not isinstance(payload, dict):
            msg = f"Supplier '{self.supplier_id}' returned an unexpected payload"
            raise SupplierRefreshError(msg)

        quotes: dict[str, SupplierQuote] = {}
        for row in payload.get("prices", []):
            try:
                quote = SupplierQuote.model_validate(row)
            except PydanticValidationError:
                logger.warning(
                    "Skipping malformed price row from supplier %s: %r",
                    self.supplier_id,
                    row,
                )
                continue
            quotes[quote.sku] = quote
        return quotes


class SupplierPriceRefresher:
    """Refreshes supplier products concurrently, one task per supplier.

    Args:
        clients: Supplier id -> client. Suppliers without a client are
            reported as failed.
        timeout_seconds: Upper bound for each supplier's batch call.
    """

    def __init__(
        self,
        clients: Mapping[str, SupplierClient],
        timeout_seconds: float = DEFAULT_SUPPLIER_TIMEOUT_SECONDS,
    ) -> None:
        self._clients = dict(clients)
        self._timeout = timeout_seconds

    async def refresh(
        self,
        products: Iterable[SupplierProduct],
        now: datetime | None = None,
    ) -> SupplierRefreshReport:
        """Refresh ``products`` and return updated copies plus per-supplier outcomes.

        Refreshed products get new prices and ``last_synced_at = now``.
        Products whose supplier failed, timed out, or omitted their SKU keep
        their old prices and are flagged ``sync_failed`` so the resolver
        treats them as stale.
        """
        now = now or datetime.now(UTC)
        products = list(products)
        by_supplier: dict[str, list[SupplierProduct]] = defaultdict(list)
        for product in products:
            by_supplier[product.supplier_id].append(product)

        supplier_ids = list(by_supplier)
        results = await asyncio.gather(
            *(self._fetch(sid, by_supplier[sid]) for sid in supplier_ids),
            return_exceptions=True,
        )

        updated: dict[str, SupplierProduct] = {}
        outcomes: list[SupplierRefreshOutcome] = []
        changes: list[PriceChange] = []

        for supplier_id, result in zip(supplier_ids, results, strict=True):
            supplier_products = by_supplier[supplier_id]
            if isinstance(result, BaseException):
                outcomes.append(self._failure(supplier_id, supplier_products, result))
                for product in supplier_products:
                    updated[product.id] = product.model_copy(update={"sync_failed": True})
                continue

            refreshed = failed = 0
            supplier_changes: list[PriceChange] = []
            for product in supplier_products:
                quote = result.get(product.supplier_sku)
                if quote is None:
                    failed += 1
                    updated[product.id] = product.model_copy(update={"sync_failed": True})
                    continue

                change = _price_change(product, quote)
                if change is not None:
                    supplier_changes.append(change)
                updated[product.id] = product.model_copy(
                    update={
                        "cost_price": quote.cost_price,
                        "list_price": quote.list_price,
                        "is_available": quote.is_available,
                        "lead_time_days": quote.lead_time_days,
                        "last_synced_at": now,
                        "sync_failed": False,
                    }
                )
                refreshed += 1

            changes.extend(supplier_changes)
            outcomes.append(
                SupplierRefreshOutcome(
                    supplier_id=supplier_id,
                    status=RefreshStatus.OK if failed == 0 else RefreshStatus.PARTIAL,
                    refreshed=refreshed,
                    failed=failed,
                    price_changes=len(supplier_changes),
                )
            )

        report = SupplierRefreshReport(
            outcomes=outcomes,
            products=[updated[p.id] for p in products],
            price_changes=changes,
        )
        logger.info(
            "Supplier refresh: %d refreshed, %d failed, %d price changes across %d suppliers",
            report.refreshed_count,
            report.failed_count,
            len(changes),
            len(supplier_ids),
        )
        return report

    async def _fetch(
        self, supplier_id: str, products: list[SupplierProduct]
    ) -> dict[str, SupplierQuote]:
        client = self._clients.get(supplier_id)
        if client is None:
            msg = f"No price client configured for supplier '{supplier_id}'"
            raise SupplierRefreshError(msg)
        skus = [p.supplier_sku for p in products]
        return await asyncio.wait_for(client.refresh_prices(skus), timeout=self._timeout)

    def _failure(
        self,
        supplier_id: str,
        products: list[SupplierProduct],
        exc: BaseException,
    ) -> SupplierRefreshOutcome:
        if isinstance(exc, TimeoutError):
            error = str(exc) or f"Timed out after {self._timeout:g}s"
            logger.warning("Supplier %s timed out: %s", supplier_id, error)
            return SupplierRefreshOutcome(
                supplier_id=supplier_id,
                status=RefreshStatus.TIMEOUT,
                failed=len(products),
                error=error,
            )
        if isinstance(exc, SupplierRefreshError):
            logger.warning("Supplier %s refresh failed: %s", supplier_id, exc)
        else:
            logger.error(
                "Unexpected error refreshing supplier %s",
                supplier_id,
                exc_info=exc,
            )
        return SupplierRefreshOutcome(
            supplier_id=supplier_id,
            status=RefreshStatus.FAILED,
            failed=len(products),
            error=str(exc) or type(exc).__name__,
        )


def _price_change(product: SupplierProduct, quote: SupplierQuote) -> PriceChange | None:
    old = product.cost_price
    if old is None or old <= 0 or old == quote.cost_price:
        return None
    return PriceChange(
        supplier_product_id=product.id,
        old_cost_price=old,
        new_cost_price=quote.cost_price,
        change_percentage=round((quote.cost_price - old) / old * 100.0, 2),
    )
