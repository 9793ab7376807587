"""
Graph walker.

Two concurrent batches per event: every relationship object first, then every
distinct leaf those relationships point at. A branch that cannot be resolved
is recorded as a failure and does not hold up its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from parcelgraph.gateway.resolver import Fetcher, ResolutionTier
from parcelgraph.ingestion.registry import EDGE_TYPES, LeafKind, Side, get_edge_type
from parcelgraph.ingestion.schemas import LeafRecord, RelationshipEdge
from parcelgraph.shared.errors import TransientFetchError
from parcelgraph.shared.observability import get_logger
from parcelgraph.shared.observability.metrics import branch_failures_total

logger = get_logger(__name__)


@dataclass(frozen=True)
class LeafTarget:
    kind: LeafKind
    cid: str
    edge_type: str
    position: int
    side: Side


@dataclass
class ResolvedLeaf:
    target: LeafTarget
    record: LeafRecord


@dataclass
class BranchFailure:
    stage: str  # "relationship" or "leaf"
    edge_type: str
    cid: str
    error: str
    entity_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "stage": self.stage,
            "edge_type": self.edge_type,
            "cid": self.cid,
            "entity_type": self.entity_type,
            "error": self.error,
        }


@dataclass
class WalkResult:
    leaves: List[ResolvedLeaf] = field(default_factory=list)
    failures: List[BranchFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


class GraphWalker:
    def __init__(self, fetcher: Fetcher):
        self._fetcher = fetcher

    async def walk(self, edges: Dict[str, List[str]]) -> WalkResult:
        """
        Resolve relationships then leaves for an edge map produced by the
        metadata dispatcher. Leaves come back in registry, position, side
        order with (entity type, CID) duplicates removed.
        """
        result = WalkResult()

        jobs: List[Tuple[str, int, str]] = [
            (edge.name, position, cid)
            for edge in EDGE_TYPES
            for position, cid in enumerate(edges.get(edge.name, ()))
        ]
        relationships = await asyncio.gather(
            *(self._resolve_relationship(name, cid, result) for name, _, cid in jobs)
        )

        targets: List[LeafTarget] = []
        seen = set()
        for (name, position, rel_cid), relationship in zip(jobs, relationships):
            if relationship is None:
                continue
            for target in self._targets(name, position, rel_cid, relationship):
                key = (target.kind.entity_type, target.cid)
                if key in seen:
                    continue
                seen.add(key)
                targets.append(target)

        records = await asyncio.gather(
            *(self._resolve_leaf(target, result) for target in targets)
        )
        result.leaves = [
            ResolvedLeaf(target=target, record=record)
            for target, record in zip(targets, records)
            if record is not None
        ]

        logger.info(
            "graph_walk_completed",
            relationships=len(jobs),
            leaves=len(result.leaves),
            failures=len(result.failures),
        )
        return result

    @staticmethod
    def _targets(
        name: str, position: int, rel_cid: str, relationship: RelationshipEdge
    ) -> List[LeafTarget]:
        edge = get_edge_type(name)
        targets = []
        for side, kind in edge.sides:
            link = relationship.from_ if side is Side.FROM else relationship.to
            if link is None:
                logger.debug(
                    "relationship_side_missing",
                    edge_type=name,
                    cid=rel_cid,
                    side=side.value,
                )
                continue
            targets.append(
                LeafTarget(
                    kind=kind, cid=link.cid, edge_type=name, position=position, side=side
                )
            )
        return targets

    async def _resolve_relationship(
        self, name: str, cid: str, result: WalkResult
    ) -> Optional[RelationshipEdge]:
        try:
            return await self._fetcher.resolve(
                cid, RelationshipEdge.model_validate, ResolutionTier.CONTENT
            )
        except TransientFetchError as exc:
            self._record_failure(result, BranchFailure("relationship", name, cid, str(exc)))
            return None

    async def _resolve_leaf(
        self, target: LeafTarget, result: WalkResult
    ) -> Optional[LeafRecord]:
        try:
            return await target.kind.fetch(self._fetcher, target.cid)
        except TransientFetchError as exc:
            self._record_failure(
                result,
                BranchFailure(
                    "leaf",
                    target.edge_type,
                    target.cid,
                    str(exc),
                    entity_type=target.kind.entity_type,
                ),
            )
            return None

    @staticmethod
    def _record_failure(result: WalkResult, failure: BranchFailure) -> None:
        branch_failures_total.labels(stage=failure.stage).inc()
        logger.warning(
            "branch_resolution_failed",
            stage=failure.stage,
            edge_type=failure.edge_type,
            cid=failure.cid,
            entity_type=failure.entity_type,
            error=failure.error,
        )
        result.failures.append(failure)
