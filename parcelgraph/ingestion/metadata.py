"""Root metadata fetch and edge-map normalization."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from parcelgraph.gateway.resolver import Fetcher, ResolutionTier
from parcelgraph.ingestion.registry import EDGE_TYPES, Arity, get_edge_type
from parcelgraph.ingestion.schemas import CidLink, RootMetadataPayload
from parcelgraph.shared.observability import get_logger

logger = get_logger(__name__)

COUNTY_LABEL = "County"


@dataclass
class RootMetadata:
    cid: str
    label: str
    # edge-type name -> relationship CIDs, in registry order
    edges: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        """Only county submissions are walked; Seed and other labels are dropped."""
        return self.label == COUNTY_LABEL


def _link_cid(link: Any) -> str:
    return CidLink.model_validate(link).cid


def normalize_edges(relationships: Mapping[str, Any]) -> Dict[str, List[str]]:
    """
    Convert the wire `relationships` map into edge-type -> [cid, ...].

    Single-pointer edge types sent as an array keep their first element;
    array edge types sent as a single pointer are wrapped. Unknown edge names
    and malformed links are skipped.
    """
    collected: Dict[str, List[str]] = {}
    for name, value in relationships.items():
        edge = get_edge_type(name)
        if edge is None:
            logger.debug("edge_type_ignored", edge_type=name)
            continue
        if value is None:
            continue

        links = value if isinstance(value, list) else [value]
        if edge.arity is Arity.SINGLE and len(links) > 1:
            logger.warning(
                "single_edge_has_many_links", edge_type=name, count=len(links)
            )
            links = links[:1]

        cids: List[str] = []
        for position, link in enumerate(links):
            try:
                cids.append(_link_cid(link))
            except ValidationError as exc:
                logger.warning(
                    "edge_link_malformed",
                    edge_type=name,
                    position=position,
                    error=str(exc),
                )
        if cids:
            collected[name] = cids

    return {edge.name: collected[edge.name] for edge in EDGE_TYPES if edge.name in collected}


class MetadataDispatcher:
    """Fetch a root metadata object and expose its label and edge map."""

    def __init__(self, fetcher: Fetcher):
        self._fetcher = fetcher

    async def dispatch(self, cid: str) -> RootMetadata:
        """
        Raises:
            GatewayExhaustedError: metadata could not be fetched within the
                metadata tier's pass cap.
        """
        payload: RootMetadataPayload = await self._fetcher.resolve(
            cid, RootMetadataPayload.model_validate, ResolutionTier.METADATA
        )
        edges = normalize_edges(payload.relationships or {})
        logger.info(
            "metadata_dispatched",
            cid=cid,
            label=payload.label,
            edge_types=list(edges),
        )
        return RootMetadata(cid=cid, label=payload.label, edges=edges)
