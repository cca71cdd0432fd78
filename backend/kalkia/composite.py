"""Composite resolver: expands composite nodes into calculated leaf items.

A composite node is a quantity-weighted bill of other nodes. Catalog data
may share sub-assemblies between composites (a DAG) but must never form a
cycle; the resolver tracks the ancestors on the current branch and fails
fast when a child repeats one of them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kalkia.exceptions import CyclicReferenceError, ValidationError
from kalkia.item_calculator import calculate_item, resolve_variant
from kalkia.models.calculation import CalculationItemInput
from kalkia.models.enums import NodeType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from kalkia.context import CalculationContext
    from kalkia.data.snapshot import CatalogSnapshot
    from kalkia.models.calculation import CalculatedItem
    from kalkia.models.catalog import Node

logger = logging.getLogger(__name__)


class CompositeResolver:
    """Recursively expands nodes against a catalog snapshot.

    Args:
        snapshot: The catalog the node graph is read from.
        context: Shared settings for the calculation run.
    """

    def __init__(self, snapshot: CatalogSnapshot, context: CalculationContext) -> None:
        self._snapshot = snapshot
        self._context = context

    def expand(
        self,
        node: Node,
        quantity: float,
        visited: set[str] | None = None,
        conditions: Mapping[str, Any] | None = None,
        variant_id: str | None = None,
        _path: tuple[str, ...] = (),
    ) -> list[CalculatedItem]:
        """Expand ``node`` at ``quantity`` into a flat list of leaf items.

        Operation nodes are priced directly. Composite nodes recurse into
        each declared child with quantity ``quantity * quantity_multiplier``.
        Group nodes contribute nothing themselves; their active structural
        children are expanded at the same quantity.

        Raises:
            NotFoundError: If ``variant_id`` is unknown.
            ValidationError: If ``node`` (or a composite child) is inactive,
                or ``variant_id`` is given for a composite or group node.
            CyclicReferenceError: If a child repeats a node on the current
                branch. The error's ``cycle`` lists the offending path.
        """
        conditions = dict(conditions or {})
        ancestors = set(visited or ())

        if not node.is_active:
            msg = f"Node '{node.id}' is inactive and cannot be calculated"
            raise ValidationError(msg)

        if node.node_type == NodeType.OPERATION:
            return [self._calculate_leaf(node, quantity, conditions, variant_id, _path)]

        if variant_id is not None:
            # Only operations carry variants
            self._snapshot.get_variant(variant_id)
            msg = (
                f"Variant '{variant_id}' cannot be applied to {node.node_type} "
                f"node '{node.id}'"
            )
            raise ValidationError(msg)

        if node.id in ancestors:
            raise CyclicReferenceError([*_path, node.id])

        ancestors.add(node.id)
        path = (*_path, node.id)
        items: list[CalculatedItem] = []

        if node.node_type == NodeType.COMPOSITE:
            for child in node.composite_children:
                if child.child_node_id in ancestors:
                    raise CyclicReferenceError([*path, child.child_node_id])
                child_node = self._snapshot.get_node(child.child_node_id)
                items.extend(
                    self.expand(
                        child_node,
                        quantity * child.quantity_multiplier,
                        visited=ancestors,
                        conditions=conditions,
                        variant_id=child.variant_id,
                        _path=path,
                    )
                )
        else:
            for child_node in self._snapshot.children_of(node.id):
                if not child_node.is_active:
                    continue
                if child_node.id in ancestors:
                    raise CyclicReferenceError([*path, child_node.id])
                items.extend(
                    self.expand(
                        child_node,
                        quantity,
                        visited=ancestors,
                        conditions=conditions,
                        _path=path,
                    )
                )

        logger.debug(
            "Expanded %s node %s into %d leaf items", node.node_type, node.id, len(items)
        )
        return items

    def _calculate_leaf(
        self,
        node: Node,
        quantity: float,
        conditions: dict[str, Any],
        variant_id: str | None,
        path: tuple[str, ...],
    ) -> CalculatedItem:
        variants = self._snapshot.variants_for(node.id)
        if variant_id is not None:
            # Lets resolve_variant report a variant owned by another node
            known = self._snapshot.get_variant(variant_id)
            if known not in variants:
                variants = [*variants, known]
        variant = resolve_variant(node, variants, variant_id)
        materials = self._snapshot.materials_for(variant.id) if variant else []
        rules = self._snapshot.rules_for(node.id, variant.id if variant else None)
        return calculate_item(
            node,
            variant,
            materials,
            rules,
            CalculationItemInput(
                node_id=node.id,
                variant_id=variant.id if variant else None,
                quantity=quantity,
                conditions=conditions,
            ),
            self._context,
            source_path=path,
        )


def expand_composite(
    node: Node,
    quantity: float,
    visited: set[str] | None,
    *,
    snapshot: CatalogSnapshot,
    context: CalculationContext,
    conditions: Mapping[str, Any] | None = None,
) -> list[CalculatedItem]:
    """Functional entry point wrapping :meth:`CompositeResolver.expand`."""
    return CompositeResolver(snapshot, context).expand(
        node, quantity, visited=visited, conditions=conditions
    )
