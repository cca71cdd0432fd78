"""Supplier price resolver.

Resolves the effective cost and sale price of a material from a priority
chain of price sources, highest precedence first:

1. **Customer product override** — explicit discount, cost or list price
   (in that order) on one supplier product for one customer.
2. **Customer-supplier agreement** — blanket discount and optional margin.
3. **Supplier product** — the supplier's last synced base cost price.
4. **Material default** — the material's own static catalog price.

A source that exists but cannot be used (missing base price, discount out
of range, ...) is skipped with a recorded reason; resolution then falls
through to the next source. Resolution is pure: fetching and refreshing the
records is done beforehand by :mod:`kalkia.services.supplier_refresh`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from kalkia.config import DEFAULT_MATERIAL_MARGIN, DEFAULT_STALE_AFTER_DAYS
from kalkia.exceptions import SupplierResolutionError, ValidationError
from kalkia.models.enums import PriceSource
from kalkia.models.supplier import SupplierPriceOverride

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from kalkia.models.catalog import Material
    from kalkia.models.supplier import (
        CustomerProductOverride,
        CustomerSupplierAgreement,
        SupplierProduct,
    )

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(days=DEFAULT_STALE_AFTER_DAYS)


@dataclass(frozen=True)
class _ResolvedPrice:
    cost: float
    margin: float
    source: PriceSource
    discount: float = 0.0
    from_supplier: bool = True


def is_stale(
    last_synced_at: datetime | None,
    now: datetime | None = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
) -> bool:
    """True when there is no sync timestamp or it is older than ``stale_after``.

    Naive timestamps are taken to be UTC.
    """
    if last_synced_at is None:
        return True
    now = now or datetime.now(UTC)
    if last_synced_at.tzinfo is None:
        last_synced_at = last_synced_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now - last_synced_at > stale_after


def _check_discount(discount: float, label: str) -> None:
    if not 0 <= discount <= 100:
        msg = f"{label} discount {discount}% is outside 0-100"
        raise SupplierResolutionError(msg)


def _base_cost(product: SupplierProduct) -> float:
    if product.cost_price is None:
        msg = f"supplier product '{product.id}' has no cost price"
        raise SupplierResolutionError(msg)
    return product.cost_price


def _customer_product_price(
    product: SupplierProduct | None,
    override: CustomerProductOverride | None,
    margin: float,
) -> _ResolvedPrice | None:
    if override is None or not override.is_active:
        return None
    if product is None:
        msg = (
            f"customer price for supplier product '{override.supplier_product_id}' "
            "has no matching supplier product"
        )
        raise SupplierResolutionError(msg)

    discount = 0.0
    if override.custom_discount_percentage is not None:
        discount = override.custom_discount_percentage
        _check_discount(discount, "customer product")
        cost = _base_cost(product) * (1 - discount / 100.0)
    elif override.custom_cost_price is not None:
        if override.custom_cost_price < 0:
            msg = f"customer cost price {override.custom_cost_price} is negative"
            raise SupplierResolutionError(msg)
        cost = override.custom_cost_price
    elif override.custom_list_price is not None:
        if override.custom_list_price < 0:
            msg = f"customer list price {override.custom_list_price} is negative"
            raise SupplierResolutionError(msg)
        cost = override.custom_list_price
    else:
        cost = _base_cost(product)

    return _ResolvedPrice(
        cost=cost,
        margin=margin,
        source=PriceSource.CUSTOMER_PRODUCT,
        discount=discount,
    )


def _customer_supplier_price(
    product: SupplierProduct | None,
    agreement: CustomerSupplierAgreement | None,
    margin: float,
) -> _ResolvedPrice | None:
    if agreement is None or not agreement.is_active or product is None:
        return None
    if agreement.supplier_id != product.supplier_id:
        return None

    _check_discount(agreement.discount_percentage, "customer-supplier")
    if agreement.custom_margin_percentage is not None:
        if agreement.custom_margin_percentage < 0:
            msg = f"customer margin {agreement.custom_margin_percentage}% is negative"
            raise SupplierResolutionError(msg)
        margin = agreement.custom_margin_percentage

    return _ResolvedPrice(
        cost=_base_cost(product) * (1 - agreement.discount_percentage / 100.0),
        margin=margin,
        source=PriceSource.CUSTOMER_SUPPLIER,
        discount=agreement.discount_percentage,
    )


def _supplier_base_price(
    material: Material,
    product: SupplierProduct | None,
    margin: float,
) -> _ResolvedPrice | None:
    if product is None:
        if material.supplier_product_id is not None:
            msg = (
                f"supplier product '{material.supplier_product_id}' is not in "
                "the price snapshot"
            )
            raise SupplierResolutionError(msg)
        return None
    return _ResolvedPrice(
        cost=_base_cost(product), margin=margin, source=PriceSource.STANDARD
    )


def _material_default_price(material: Material, margin: float) -> _ResolvedPrice:
    cost = material.cost_price if material.cost_price is not None else 0.0
    return _ResolvedPrice(
        cost=cost,
        margin=margin,
        source=PriceSource.STANDARD,
        from_supplier=False,
    )


def resolve_material_price(
    material: Material,
    supplier_product: SupplierProduct | None,
    customer_agreement: CustomerSupplierAgreement | None,
    customer_product_override: CustomerProductOverride | None,
    *,
    now: datetime | None = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
    default_margin: float = DEFAULT_MATERIAL_MARGIN,
) -> SupplierPriceOverride:
    """Resolve the effective price of one material.

    The sale price is always
    ``effective_sale_price = effective_cost_price * (1 + margin / 100)``. A
    customer list price only serves as the cost basis when the customer
    override carries neither a discount nor an explicit cost.

    Raises:
        ValidationError: If ``default_margin`` is negative or not finite.
    """
    if not math.isfinite(default_margin) or default_margin < 0:
        msg = (
            f"default_margin must be a finite non-negative number, got {default_margin}"
        )
        raise ValidationError(msg)

    margin = default_margin
    if supplier_product is not None and supplier_product.margin_percentage is not None:
        margin = supplier_product.margin_percentage

    sources: tuple[Callable[[], _ResolvedPrice | None], ...] = (
        lambda: _customer_product_price(
            supplier_product, customer_product_override, margin
        ),
        lambda: _customer_supplier_price(supplier_product, customer_agreement, margin),
        lambda: _supplier_base_price(material, supplier_product, margin),
    )

    fallback_reasons: list[str] = []
    resolved: _ResolvedPrice | None = None
    for resolve in sources:
        try:
            resolved = resolve()
        except SupplierResolutionError as exc:
            logger.warning(
                "Falling back to next price source for material %s: %s",
                material.id,
                exc,
            )
            fallback_reasons.append(f"Material '{material.id}': {exc}")
            continue
        if resolved is not None:
            break
    else:
        resolved = _material_default_price(material, margin)

    cost = max(resolved.cost, 0.0)
    sale = cost * (1 + resolved.margin / 100.0)

    product = supplier_product if resolved.from_supplier else None
    base_cost = (
        supplier_product.cost_price
        if supplier_product is not None and supplier_product.cost_price is not None
        else cost
    )
    last_synced_at = product.last_synced_at if product else None

    return SupplierPriceOverride(
        material_id=material.id,
        supplier_product_id=product.id if product else None,
        supplier_name=product.supplier_name if product else "",
        supplier_sku=product.supplier_sku if product else "",
        base_cost_price=base_cost,
        effective_cost_price=cost,
        effective_sale_price=max(sale, 0.0),
        discount_percentage=resolved.discount,
        margin_percentage=resolved.margin,
        price_source=resolved.source,
        is_stale=(product is not None and product.sync_failed)
        or is_stale(last_synced_at, now, stale_after),
        last_synced_at=last_synced_at,
        fallback_reasons=fallback_reasons,
    )


def build_supplier_price_map(
    materials: Iterable[Material],
    supplier_products: Mapping[str, SupplierProduct],
    agreements: Iterable[CustomerSupplierAgreement] = (),
    product_overrides: Iterable[CustomerProductOverride] = (),
    *,
    customer_id: str | None = None,
    now: datetime | None = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
    default_margin: float = DEFAULT_MATERIAL_MARGIN,
) -> dict[str, SupplierPriceOverride]:
    """Resolve every supplier-linked material into a price override map.

    Customer agreements and product overrides are only considered for
    ``customer_id``; without a customer the standard supplier price is used.
    Materials without a supplier link are left out.
    """
    agreements_by_supplier: dict[str, CustomerSupplierAgreement] = {}
    overrides_by_product: dict[str, CustomerProductOverride] = {}
    if customer_id is not None:
        agreements_by_supplier = {
            a.supplier_id: a
            for a in agreements
            if a.customer_id == customer_id and a.is_active
        }
        overrides_by_product = {
            o.supplier_product_id: o
            for o in product_overrides
            if o.customer_id == customer_id and o.is_active
        }

    price_map: dict[str, SupplierPriceOverride] = {}
    for material in materials:
        if material.supplier_product_id is None:
            continue
        product = supplier_products.get(material.supplier_product_id)
        price_map[material.id] = resolve_material_price(
            material,
            product,
            agreements_by_supplier.get(product.supplier_id) if product else None,
            overrides_by_product.get(material.supplier_product_id),
            now=now,
            stale_after=stale_after,
            default_margin=default_margin,
        )

    logger.debug("Resolved %d supplier price overrides", len(price_map))
    return price_map
