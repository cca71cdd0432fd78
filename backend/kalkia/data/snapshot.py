"""In-memory catalog snapshot for one or more calculation runs."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from kalkia.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kalkia.models.catalog import (
        BuildingProfile,
        GlobalFactor,
        Material,
        Node,
        Rule,
        Variant,
    )


class CatalogSnapshot:
    """Flat, id-keyed lookup over already-fetched catalog rows.

    Nodes are stored as an arena keyed by id; parent ids and materialized
    paths are plain data, so no node owns another. The snapshot is built
    once and only read afterwards, so it can be shared between concurrent
    calculation runs.
    """

    def __init__(
        self,
        nodes: Iterable[Node],
        variants: Iterable[Variant] = (),
        materials: Iterable[Material] = (),
        rules: Iterable[Rule] = (),
        building_profiles: Iterable[BuildingProfile] = (),
        global_factors: Iterable[GlobalFactor] = (),
    ) -> None:
        self._nodes: dict[str, Node] = {}
        self._nodes_by_code: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                msg = f"Duplicate node id '{node.id}'"
                raise ValidationError(msg)
            if node.code in self._nodes_by_code:
                msg = f"Duplicate node code '{node.code}'"
                raise ValidationError(msg)
            self._nodes[node.id] = node
            self._nodes_by_code[node.code] = node

        self._children: dict[str, list[Node]] = defaultdict(list)
        for node in self._nodes.values():
            if node.parent_id is not None:
                self._children[node.parent_id].append(node)
        for children in self._children.values():
            children.sort(key=lambda n: (n.sort_order, n.code))

        self._variants: dict[str, Variant] = {}
        self._variants_by_node: dict[str, list[Variant]] = defaultdict(list)
        for variant in variants:
            self._variants[variant.id] = variant
            self._variants_by_node[variant.node_id].append(variant)
        for node_id, node_variants in self._variants_by_node.items():
            node_variants.sort(key=lambda v: v.sort_order)
            defaults = [v.id for v in node_variants if v.is_default]
            if len(defaults) > 1:
                msg = (
                    f"Node '{node_id}' has more than one default variant: "
                    f"{', '.join(defaults)}"
                )
                raise ValidationError(msg)

        self._materials_by_variant: dict[str, list[Material]] = defaultdict(list)
        for material in materials:
            self._materials_by_variant[material.variant_id].append(material)
        for variant_materials in self._materials_by_variant.values():
            variant_materials.sort(key=lambda m: m.sort_order)

        self._rules = list(rules)
        self._building_profiles = {p.id: p for p in building_profiles}
        self._global_factors = list(global_factors)

        self._check_paths()

    def _check_paths(self) -> None:
        """Every non-empty path must extend its parent's path by the node code."""
        for node in self._nodes.values():
            if not node.path:
                continue
            if node.parent_id is None:
                expected = node.code
            else:
                parent = self._nodes.get(node.parent_id)
                if parent is None:
                    raise NotFoundError("parent node", node.parent_id)
                if not parent.path:
                    continue
                expected = f"{parent.path}.{node.code}"
            if node.path != expected:
                msg = (
                    f"Node '{node.id}' path '{node.path}' is inconsistent "
                    f"with its parent chain (expected '{expected}')"
                )
                raise ValidationError(msg)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError("node", node_id)
        return node

    def get_node_by_code(self, code: str) -> Node:
        node = self._nodes_by_code.get(code)
        if node is None:
            raise NotFoundError("node code", code)
        return node

    def children_of(self, node_id: str) -> list[Node]:
        """Structural (parent_id) children, ordered by sort order then code."""
        return list(self._children.get(node_id, []))

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    # ------------------------------------------------------------------
    # Variants, materials, rules
    # ------------------------------------------------------------------

    def get_variant(self, variant_id: str) -> Variant:
        variant = self._variants.get(variant_id)
        if variant is None:
            raise NotFoundError("variant", variant_id)
        return variant

    def variants_for(self, node_id: str) -> list[Variant]:
        return list(self._variants_by_node.get(node_id, []))

    def materials_for(self, variant_id: str) -> list[Material]:
        return list(self._materials_by_variant.get(variant_id, []))

    @property
    def materials(self) -> list[Material]:
        return [m for ms in self._materials_by_variant.values() for m in ms]

    def rules_for(self, node_id: str, variant_id: str | None = None) -> list[Rule]:
        """Rules bound to the node or to the given variant."""
        return [
            r
            for r in self._rules
            if r.node_id == node_id
            or (variant_id is not None and r.variant_id == variant_id)
        ]

    # ------------------------------------------------------------------
    # Profiles and factors
    # ------------------------------------------------------------------

    def get_building_profile(self, profile_id: str) -> BuildingProfile:
        profile = self._building_profiles.get(profile_id)
        if profile is None:
            raise NotFoundError("building profile", profile_id)
        return profile

    @property
    def building_profiles(self) -> list[BuildingProfile]:
        return list(self._building_profiles.values())

    @property
    def global_factors(self) -> list[GlobalFactor]:
        return list(self._global_factors)
