# Shared fixtures: in-memory collaborators and payload builders.
# Nothing here touches the network; gateway tests use httpx.MockTransport.

import copy
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Iterable, Optional

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ["ENV"] = "development"

from parcelgraph.codec import bytes32_to_cid  # noqa: E402
from parcelgraph.gateway.resolver import ResolutionTier  # noqa: E402
from parcelgraph.shared.config import (  # noqa: E402
    Config,
    EventGateConfig,
    GatewayConfig,
    GatewayEndpointConfig,
)
from parcelgraph.shared.errors import (  # noqa: E402
    GatewayExhaustedError,
    ShapeMismatchError,
)
from parcelgraph.store import InMemoryRecordStore  # noqa: E402

CONTENT_HASH = "0x" + "11" * 32
PROPERTY_HASH = "0x" + "22" * 32
SUBMITTER = "0xAbC0000000000000000000000000000000000001"
PARCEL_ID = "52434205310037080"


class FakeFetcher:
    """Serves canned payloads by CID and records every call."""

    def __init__(
        self,
        payloads: Optional[Dict[str, Any]] = None,
        failing: Iterable[str] = (),
    ):
        self.payloads = dict(payloads or {})
        self.failing = set(failing)
        self.calls = []

    async def resolve(self, cid, validator=None, tier=ResolutionTier.CONTENT):
        self.calls.append((cid, tier))
        if cid in self.failing or cid not in self.payloads:
            raise GatewayExhaustedError(cid, 1)
        payload = copy.deepcopy(self.payloads[cid])
        if validator is None:
            return payload
        try:
            return validator(payload)
        except (ValueError, TypeError) as exc:
            raise ShapeMismatchError(str(exc), cid=cid) from exc

    def fetched(self, cid: str) -> int:
        return sum(1 for called, _ in self.calls if called == cid)


class GraphBuilder:
    """Assembles the gateway payloads behind one County submission."""

    def __init__(self, content_hash: str = CONTENT_HASH, label: str = "County"):
        self.content_hash = content_hash
        self.root_cid = bytes32_to_cid(content_hash)
        self.label = label
        self.payloads: Dict[str, Any] = {}
        self.relationships: Dict[str, Any] = {}
        self.cids: Dict[str, str] = {}
        self._counter = 0

    def _new_cid(self, hint: str) -> str:
        self._counter += 1
        return f"bafk{hint.lower()}{self.content_hash[2:6]}{self._counter:04d}"

    def leaf(self, name: str, data: Dict[str, Any]) -> str:
        cid = self._new_cid(name)
        self.payloads[cid] = data
        self.cids[name] = cid
        return cid

    def edge(
        self,
        edge_type: str,
        to: Optional[str] = None,
        from_: Optional[str] = None,
        array: bool = False,
    ) -> str:
        rel: Dict[str, Any] = {"to": {"/": to or self._new_cid("target")}}
        if from_ is not None:
            rel["from"] = {"/": from_}
        rel_cid = self._new_cid("rel")
        self.payloads[rel_cid] = rel
        link = {"/": rel_cid}
        if array:
            self.relationships.setdefault(edge_type, []).append(link)
        else:
            self.relationships[edge_type] = link
        return rel_cid

    def populate_full(self, parcel_identifier: Optional[str] = PARCEL_ID) -> "GraphBuilder":
        prop_data: Dict[str, Any] = {
            "property_type": "SingleFamily",
            "property_structure_built_year": 1987,
            "request_identifier": "req-1",
        }
        if parcel_identifier is not None:
            prop_data["parcel_identifier"] = parcel_identifier

        prop = self.leaf("Property", prop_data)
        address = self.leaf(
            "Address",
            {"street_number": "123", "street_name": "Main", "city_name": "LAKE MARY"},
        )
        self.edge("property_has_address", to=address, from_=prop)
        self.edge(
            "property_has_structure",
            to=self.leaf("Structure", {"number_of_stories": 2, "roof_condition": ""}),
        )
        self.edge("property_has_lot", to=self.leaf("Lot", {"lot_area_sqft": "8712"}))
        self.edge(
            "property_has_utility",
            to=self.leaf("Utility", {"solar_panel_present": False, "sewer_type": "Public"}),
        )
        self.edge(
            "property_has_flood_storm_information",
            to=self.leaf("FloodStormInformation", {"flood_zone": "X"}),
        )
        self.edge(
            "address_has_fact_sheet",
            to=self.leaf("IpfsFactSheet", {"full_generation_command": "gen"}),
            from_=address,
            array=True,
        )
        sale_1 = self.leaf("Sale1", {"purchase_price_amount": 250000, "sale_type": "Arms"})
        sale_2 = self.leaf("Sale2", {"purchase_price_amount": 0})
        self.edge("property_has_sales_history", to=sale_1, array=True)
        self.edge("property_has_sales_history", to=sale_2, array=True)
        self.edge("property_has_tax", to=self.leaf("Tax", {"tax_year": 2024}), array=True)
        self.edge(
            "person_has_property",
            from_=self.leaf("Person", {"first_name": "Ada", "last_name": "Lovelace"}),
            to=prop,
            array=True,
        )
        self.edge(
            "company_has_property",
            from_=self.leaf("Company", {"name": "Acme Holdings LLC"}),
            to=prop,
            array=True,
        )
        self.edge(
            "property_has_layout",
            to=self.leaf("Layout", {"space_type": "Kitchen"}),
            array=True,
        )
        deed_file = self.leaf("File", {"name": "deed.pdf", "file_format": "pdf"})
        self.edge("property_has_file", to=deed_file, array=True)
        deed = self.leaf("Deed", {"deed_type": "Warranty Deed"})
        self.edge("deed_has_file", from_=deed, to=deed_file, array=True)
        self.edge("sales_history_has_deed", from_=sale_1, to=deed, array=True)
        return self

    def build(self) -> Dict[str, Any]:
        payloads = dict(self.payloads)
        payloads[self.root_cid] = {
            "label": self.label,
            "relationships": copy.deepcopy(self.relationships),
        }
        return payloads

    def fetcher(self, failing: Iterable[str] = ()) -> FakeFetcher:
        return FakeFetcher(self.build(), failing=failing)


@pytest.fixture
def graph():
    return GraphBuilder()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def config():
    return Config(
        gateway=GatewayConfig(
            endpoints=[GatewayEndpointConfig(url="https://gw.test/ipfs")]
        ),
        event_gate=EventGateConfig(allowed_submitters=[SUBMITTER]),
    )


@pytest.fixture
def event():
    return {
        "contentHash": CONTENT_HASH,
        "submitter": SUBMITTER,
        "propertyHash": PROPERTY_HASH,
        "timestamp": 1718000000,
    }


@pytest.fixture
def fake_fetcher_cls():
    return FakeFetcher


@pytest.fixture
def graph_builder_cls():
    return GraphBuilder


@pytest.fixture
def ids():
    return SimpleNamespace(
        content_hash=CONTENT_HASH,
        property_hash=PROPERTY_HASH,
        submitter=SUBMITTER,
        parcel_id=PARCEL_ID,
    )
