"""
Static edge-type registry.

Each edge type names which side(s) of its relationship object point at
leaves worth materializing, and what kind of leaf sits there. The registry is
closed: edge names not listed here (e.g. property_seed) are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from parcelgraph.gateway.resolver import Fetcher, ResolutionTier
from parcelgraph.ingestion.schemas import (
    Address,
    Company,
    Deed,
    File,
    FloodStormInformation,
    IpfsFactSheet,
    Layout,
    LeafRecord,
    Lot,
    Person,
    Property,
    SalesHistory,
    Structure,
    Tax,
    Utility,
)


class Arity(str, Enum):
    SINGLE = "single"  # {"/": cid}
    ARRAY = "array"  # [{"/": cid}, ...]


class Side(str, Enum):
    FROM = "from"
    TO = "to"


@dataclass(frozen=True)
class LeafKind:
    """
    A materializable entity type.

    Singletons are written immediately and linked from `root_field` on the
    RootRecord; repeatable kinds carry a `root_id` and are committed by the
    identity reconciler.
    """

    entity_type: str
    model: Type[LeafRecord]
    repeatable: bool = False
    root_field: Optional[str] = None

    def validate(self, payload: object) -> LeafRecord:
        return self.model.model_validate(payload)

    async def fetch(self, fetcher: Fetcher, cid: str) -> LeafRecord:
        """Resolve `cid` and decode it as this kind, keyed by the CID."""
        record = await fetcher.resolve(cid, self.validate, ResolutionTier.CONTENT)
        return record.model_copy(update={"id": cid})


STRUCTURE = LeafKind("Structure", Structure, root_field="structure_id")
ADDRESS = LeafKind("Address", Address, root_field="address_id")
PROPERTY = LeafKind("Property", Property, root_field="property_id")
LOT = LeafKind("Lot", Lot, root_field="lot_id")
UTILITY = LeafKind("Utility", Utility, root_field="utility_id")
FLOOD_STORM_INFORMATION = LeafKind(
    "FloodStormInformation",
    FloodStormInformation,
    root_field="flood_storm_information_id",
)
IPFS_FACT_SHEET = LeafKind("IpfsFactSheet", IpfsFactSheet, root_field="ipfs_fact_sheet_id")

SALES_HISTORY = LeafKind("SalesHistory", SalesHistory, repeatable=True)
TAX = LeafKind("Tax", Tax, repeatable=True)
PERSON = LeafKind("Person", Person, repeatable=True)
COMPANY = LeafKind("Company", Company, repeatable=True)
LAYOUT = LeafKind("Layout", Layout, repeatable=True)
FILE = LeafKind("File", File, repeatable=True)
DEED = LeafKind("Deed", Deed, repeatable=True)

LEAF_KINDS: Dict[str, LeafKind] = {
    kind.entity_type: kind
    for kind in (
        STRUCTURE,
        ADDRESS,
        PROPERTY,
        LOT,
        UTILITY,
        FLOOD_STORM_INFORMATION,
        IPFS_FACT_SHEET,
        SALES_HISTORY,
        TAX,
        PERSON,
        COMPANY,
        LAYOUT,
        FILE,
        DEED,
    )
}


@dataclass(frozen=True)
class EdgeType:
    name: str
    arity: Arity
    from_leaf: Optional[LeafKind] = None
    to_leaf: Optional[LeafKind] = None

    @property
    def sides(self) -> Tuple[Tuple[Side, LeafKind], ...]:
        """(side, kind) pairs to resolve, `from` before `to`."""
        pairs = []
        if self.from_leaf is not None:
            pairs.append((Side.FROM, self.from_leaf))
        if self.to_leaf is not None:
            pairs.append((Side.TO, self.to_leaf))
        return tuple(pairs)


# Order matters: when several instances feed the same RootRecord field, the
# first one in this order wins.
EDGE_TYPES: Tuple[EdgeType, ...] = (
    EdgeType("property_has_structure", Arity.SINGLE, to_leaf=STRUCTURE),
    EdgeType("property_has_address", Arity.SINGLE, from_leaf=PROPERTY, to_leaf=ADDRESS),
    EdgeType("property_has_lot", Arity.SINGLE, to_leaf=LOT),
    EdgeType("property_has_utility", Arity.SINGLE, to_leaf=UTILITY),
    EdgeType(
        "property_has_flood_storm_information",
        Arity.SINGLE,
        to_leaf=FLOOD_STORM_INFORMATION,
    ),
    EdgeType(
        "address_has_fact_sheet", Arity.ARRAY, from_leaf=ADDRESS, to_leaf=IPFS_FACT_SHEET
    ),
    EdgeType("property_has_sales_history", Arity.ARRAY, to_leaf=SALES_HISTORY),
    EdgeType("property_has_tax", Arity.ARRAY, to_leaf=TAX),
    EdgeType("person_has_property", Arity.ARRAY, from_leaf=PERSON),
    EdgeType("company_has_property", Arity.ARRAY, from_leaf=COMPANY),
    EdgeType("property_has_layout", Arity.ARRAY, to_leaf=LAYOUT),
    EdgeType("property_has_file", Arity.ARRAY, to_leaf=FILE),
    EdgeType("deed_has_file", Arity.ARRAY, from_leaf=DEED, to_leaf=FILE),
    EdgeType("sales_history_has_deed", Arity.ARRAY, from_leaf=SALES_HISTORY, to_leaf=DEED),
)

EDGE_TYPES_BY_NAME: Dict[str, EdgeType] = {edge.name: edge for edge in EDGE_TYPES}


def get_edge_type(name: str) -> Optional[EdgeType]:
    return EDGE_TYPES_BY_NAME.get(name)
