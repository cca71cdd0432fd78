"""Seed catalog for the Kalkia estimation engine.

A small Danish electrical-installation catalog: outlets, switches, light
points and cable runs grouped under an installation tree, plus a bathroom
package composite, the standard building profiles and the global factors
an installer would start from. Prices are DKK excl. VAT.
"""

from kalkia.data.snapshot import CatalogSnapshot
from kalkia.models.catalog import (
    BuildingProfile,
    CompositeChild,
    GlobalFactor,
    Material,
    Node,
    Rule,
    Variant,
)
from kalkia.models.enums import FactorValueType, NodeType, RuleType

SEED_NODES: list[Node] = [
    # --- Structure ---
    Node(
        id="grp-installation",
        code="INST",
        name="El-installation",
        node_type=NodeType.GROUP,
        path="INST",
    ),
    Node(
        id="grp-outlets",
        code="OUTLETS",
        name="Stikkontakter",
        node_type=NodeType.GROUP,
        path="INST.OUTLETS",
        depth=1,
        parent_id="grp-installation",
        sort_order=1,
    ),
    Node(
        id="grp-lighting",
        code="LIGHTING",
        name="Belysning",
        node_type=NodeType.GROUP,
        path="INST.LIGHTING",
        depth=1,
        parent_id="grp-installation",
        sort_order=2,
    ),
    Node(
        id="grp-cabling",
        code="CABLING",
        name="Kabelføring",
        node_type=NodeType.GROUP,
        path="INST.CABLING",
        depth=1,
        parent_id="grp-installation",
        sort_order=3,
    ),
    # --- Operations ---
    Node(
        id="op-socket-double",
        code="SOCKET_DOUBLE",
        name="Dobbelt stikkontakt",
        path="INST.OUTLETS.SOCKET_DOUBLE",
        depth=2,
        parent_id="grp-outlets",
        base_time_seconds=900,
        default_cost_price=85.0,
        default_sale_price=145.0,
        sort_order=1,
    ),
    Node(
        id="op-socket-outdoor",
        code="SOCKET_OUTDOOR",
        name="Udendørs stikkontakt IP44",
        path="INST.OUTLETS.SOCKET_OUTDOOR",
        depth=2,
        parent_id="grp-outlets",
        base_time_seconds=1500,
        default_cost_price=165.0,
        default_sale_price=275.0,
        difficulty_level=1.5,
        sort_order=2,
    ),
    Node(
        id="op-switch",
        code="SWITCH",
        name="Afbryder",
        path="INST.LIGHTING.SWITCH",
        depth=2,
        parent_id="grp-lighting",
        base_time_seconds=600,
        default_cost_price=60.0,
        default_sale_price=110.0,
        sort_order=1,
    ),
    Node(
        id="op-light-point",
        code="LIGHT_POINT",
        name="Lampeudtag",
        path="INST.LIGHTING.LIGHT_POINT",
        depth=2,
        parent_id="grp-lighting",
        base_time_seconds=1200,
        default_cost_price=70.0,
        default_sale_price=125.0,
        sort_order=2,
    ),
    Node(
        id="op-cable-run",
        code="CABLE_RUN",
        name="Kabeltræk pr. meter",
        path="INST.CABLING.CABLE_RUN",
        depth=2,
        parent_id="grp-cabling",
        base_time_seconds=120,
        default_cost_price=12.0,
        default_sale_price=22.0,
        sort_order=1,
    ),
    # --- Packages ---
    Node(
        id="cmp-bathroom",
        code="PKG_BATHROOM",
        name="Badeværelsespakke",
        node_type=NodeType.COMPOSITE,
        description="Stikkontakt, to lampeudtag, afbryder og 15 m kabel",
        composite_children=[
            CompositeChild(child_node_id="op-socket-double", variant_id="var-socket-ip44"),
            CompositeChild(child_node_id="op-light-point", quantity_multiplier=2),
            CompositeChild(child_node_id="op-switch"),
            CompositeChild(child_node_id="op-cable-run", quantity_multiplier=15),
        ],
    ),
]

SEED_VARIANTS: list[Variant] = [
    Variant(
        id="var-socket-standard",
        node_id="op-socket-double",
        code="STD",
        name="Standard, gips",
        is_default=True,
        waste_percentage=5,
    ),
    Variant(
        id="var-socket-concrete",
        node_id="op-socket-double",
        code="CONCRETE",
        name="Beton",
        time_multiplier=1.6,
        extra_time_seconds=300,
        waste_percentage=8,
        sort_order=1,
    ),
    Variant(
        id="var-socket-ip44",
        node_id="op-socket-double",
        code="IP44",
        name="Vådrum IP44",
        time_multiplier=1.2,
        cost_multiplier=1.35,
        price_multiplier=1.35,
        waste_percentage=5,
        sort_order=2,
    ),
    Variant(
        id="var-outdoor-standard",
        node_id="op-socket-outdoor",
        code="STD",
        name="Standard",
        is_default=True,
    ),
    Variant(
        id="var-switch-standard",
        node_id="op-switch",
        code="STD",
        name="Standard",
        is_default=True,
    ),
    Variant(
        id="var-light-standard",
        node_id="op-light-point",
        code="STD",
        name="Standard",
        is_default=True,
        waste_percentage=5,
    ),
    Variant(
        id="var-cable-surface",
        node_id="op-cable-run",
        code="SURFACE",
        name="Synlig på væg",
        is_default=True,
        waste_percentage=8,
    ),
    Variant(
        id="var-cable-concealed",
        node_id="op-cable-run",
        code="CONCEALED",
        name="Skjult i væg",
        time_multiplier=2.0,
        waste_percentage=10,
        sort_order=1,
    ),
]

SEED_MATERIALS: list[Material] = [
    Material(
        id="mat-socket-double",
        variant_id="var-socket-standard",
        name="Stikkontakt 2-polet m/jord",
        cost_price=62.0,
        sale_price=109.0,
        supplier_product_id="sp-ao-socket-double",
    ),
    Material(
        id="mat-socket-box",
        variant_id="var-socket-standard",
        name="Indmuringsdåse",
        cost_price=9.5,
        sale_price=18.0,
        sort_order=1,
    ),
    Material(
        id="mat-socket-double-concrete",
        variant_id="var-socket-concrete",
        name="Stikkontakt 2-polet m/jord",
        cost_price=62.0,
        sale_price=109.0,
        supplier_product_id="sp-ao-socket-double",
    ),
    Material(
        id="mat-socket-box-concrete",
        variant_id="var-socket-concrete",
        name="Betondåse",
        cost_price=14.0,
        sale_price=26.0,
        sort_order=1,
    ),
    Material(
        id="mat-socket-double-ip44",
        variant_id="var-socket-ip44",
        name="Stikkontakt 2-polet IP44",
        cost_price=62.0,
        sale_price=109.0,
    ),
    Material(
        id="mat-socket-outdoor",
        variant_id="var-outdoor-standard",
        name="Udendørs stikkontakt IP44",
        cost_price=139.0,
        sale_price=235.0,
    ),
    Material(
        id="mat-outdoor-timer",
        variant_id="var-outdoor-standard",
        name="Tænd/sluk-ur",
        cost_price=189.0,
        sale_price=299.0,
        is_optional=True,
        sort_order=1,
    ),
    Material(
        id="mat-switch",
        variant_id="var-switch-standard",
        name="Afbryder 1-polet",
        cost_price=48.0,
        sale_price=89.0,
        supplier_product_id="sp-lm-switch",
    ),
    Material(
        id="mat-light-point",
        variant_id="var-light-standard",
        name="Lampeudtag DCL",
        cost_price=38.0,
        sale_price=69.0,
    ),
    Material(
        id="mat-cable-surface",
        variant_id="var-cable-surface",
        name="PVIK 3G1,5",
        quantity=1.0,
        unit="m",
        cost_price=8.9,
        sale_price=16.0,
        supplier_product_id="sp-ao-cable",
    ),
    Material(
        id="mat-cable-clips",
        variant_id="var-cable-surface",
        name="Kabelclips",
        quantity=3.0,
        cost_price=0.6,
        sale_price=1.2,
        sort_order=1,
    ),
    Material(
        id="mat-cable-concealed",
        variant_id="var-cable-concealed",
        name="PVIK 3G1,5",
        unit="m",
        cost_price=8.9,
        sale_price=16.0,
        supplier_product_id="sp-ao-cable",
    ),
    Material(
        id="mat-cable-conduit",
        variant_id="var-cable-concealed",
        name="Flexrør 16 mm",
        unit="m",
        cost_price=4.2,
        sale_price=8.0,
        sort_order=1,
    ),
]

SEED_RULES: list[Rule] = [
    Rule(
        id="rule-high-ceiling",
        node_id="op-light-point",
        name="Loftshøjde over 2,8 m",
        rule_type=RuleType.HEIGHT,
        condition={"min_height": 2.8},
        time_multiplier=1.3,
    ),
    Rule(
        id="rule-ladder-access",
        node_id="op-light-point",
        name="Lift påkrævet",
        condition={"kind": "flag_match", "flags": {"access": "lift"}},
        extra_time_seconds=600,
        extra_cost=150.0,
        sort_order=1,
    ),
    Rule(
        id="rule-volume-sockets",
        node_id="op-socket-double",
        name="Mængderabat på tid ved 10+",
        condition={"kind": "threshold", "key": "quantity", "min": 10},
        time_multiplier=0.9,
    ),
    Rule(
        id="rule-long-cable",
        node_id="op-cable-run",
        name="Lange kabeltræk",
        condition={"kind": "formula", "key": "run_length", "operator": "gt", "value": 25},
        time_multiplier=0.85,
    ),
]

SEED_BUILDING_PROFILES: list[BuildingProfile] = [
    BuildingProfile(id="bp-house", code="HOUSE", name="Parcelhus"),
    BuildingProfile(
        id="bp-apartment",
        code="APARTMENT",
        name="Lejlighed",
        time_multiplier=1.1,
        difficulty_multiplier=1.1,
        material_waste_multiplier=1.05,
    ),
    BuildingProfile(
        id="bp-industrial",
        code="INDUSTRIAL",
        name="Erhverv/Industri",
        time_multiplier=1.2,
        difficulty_multiplier=1.3,
        material_waste_multiplier=1.1,
    ),
    BuildingProfile(
        id="bp-renovation",
        code="RENOVATION",
        name="Renovering",
        time_multiplier=1.4,
        difficulty_multiplier=1.5,
        material_waste_multiplier=1.15,
        overhead_multiplier=1.1,
    ),
    BuildingProfile(
        id="bp-new-build",
        code="NEW_BUILD",
        name="Nybyg",
        time_multiplier=0.9,
        difficulty_multiplier=0.8,
        material_waste_multiplier=0.95,
    ),
]

SEED_GLOBAL_FACTORS: list[GlobalFactor] = [
    GlobalFactor(
        id="gf-indirect-time",
        factor_key="indirect_time",
        name="Indirekte tid",
        value_type=FactorValueType.PERCENTAGE,
        value=15.0,
        min_value=5.0,
        max_value=30.0,
    ),
    GlobalFactor(
        id="gf-personal-time",
        factor_key="personal_time",
        name="Personlig tid",
        value_type=FactorValueType.PERCENTAGE,
        value=8.0,
        min_value=5.0,
        max_value=15.0,
    ),
    GlobalFactor(
        id="gf-overhead",
        factor_key="overhead",
        name="Overhead/Administration",
        value_type=FactorValueType.PERCENTAGE,
        value=12.0,
        min_value=5.0,
        max_value=25.0,
    ),
    GlobalFactor(
        id="gf-material-waste",
        factor_key="material_waste",
        name="Materialespild",
        value_type=FactorValueType.PERCENTAGE,
        value=5.0,
        min_value=2.0,
        max_value=15.0,
    ),
]


def seed_snapshot() -> CatalogSnapshot:
    """Build a CatalogSnapshot over the seed catalog."""
    return CatalogSnapshot(
        nodes=SEED_NODES,
        variants=SEED_VARIANTS,
        materials=SEED_MATERIALS,
        rules=SEED_RULES,
        building_profiles=SEED_BUILDING_PROFILES,
        global_factors=SEED_GLOBAL_FACTORS,
    )
