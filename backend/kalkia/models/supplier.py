"""Supplier and customer pricing models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from kalkia.models.enums import PriceSource, RefreshStatus


class SupplierProduct(BaseModel):
    """A product in a supplier's catalog, as last synced."""

    id: str
    supplier_id: str
    supplier_name: str = ""
    supplier_sku: str
    cost_price: float | None = Field(default=None, ge=0)
    list_price: float | None = Field(default=None, ge=0)
    margin_percentage: float | None = Field(default=None, ge=0)
    is_available: bool = True
    lead_time_days: int | None = None
    last_synced_at: datetime | None = None
    sync_failed: bool = False


class CustomerSupplierAgreement(BaseModel):
    """Blanket discount (and optional margin) a customer has with a supplier."""

    customer_id: str
    supplier_id: str
    discount_percentage: float = 0.0
    custom_margin_percentage: float | None = None
    is_active: bool = True


class CustomerProductOverride(BaseModel):
    """Customer-specific price for one supplier product."""

    customer_id: str
    supplier_product_id: str
    custom_cost_price: float | None = None
    custom_list_price: float | None = None
    custom_discount_percentage: float | None = None
    is_active: bool = True


class SupplierPriceOverride(BaseModel):
    """The effective price of one material after the priority chain."""

    material_id: str
    supplier_product_id: str | None = None
    supplier_name: str = ""
    supplier_sku: str = ""
    base_cost_price: float
    effective_cost_price: float
    effective_sale_price: float
    discount_percentage: float = 0.0
    margin_percentage: float
    price_source: PriceSource = PriceSource.STANDARD
    is_stale: bool
    last_synced_at: datetime | None = None
    fallback_reasons: list[str] = Field(default_factory=list)


class SupplierQuote(BaseModel):
    """A live price returned by a supplier API for one SKU."""

    sku: str
    cost_price: float = Field(ge=0)
    list_price: float | None = Field(default=None, ge=0)
    is_available: bool = True
    lead_time_days: int | None = None


class PriceChange(BaseModel):
    """Price history record produced when a refresh changes a cost price."""

    supplier_product_id: str
    old_cost_price: float
    new_cost_price: float
    change_percentage: float
    change_source: str = "api_sync"


class SupplierRefreshOutcome(BaseModel):
    """Result of refreshing every product linked to one supplier."""

    supplier_id: str
    status: RefreshStatus
    refreshed: int = 0
    failed: int = 0
    price_changes: int = 0
    error: str | None = None


class SupplierRefreshReport(BaseModel):
    """Aggregated refresh result across all suppliers."""

    outcomes: list[SupplierRefreshOutcome] = Field(default_factory=list)
    products: list[SupplierProduct] = Field(default_factory=list)
    price_changes: list[PriceChange] = Field(default_factory=list)

    @property
    def refreshed_count(self) -> int:
        return sum(o.refreshed for o in self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(o.failed for o in self.outcomes)

    @property
    def failed_suppliers(self) -> list[str]:
        return [
            o.supplier_id
            for o in self.outcomes
            if o.status in (RefreshStatus.FAILED, RefreshStatus.TIMEOUT)
        ]
