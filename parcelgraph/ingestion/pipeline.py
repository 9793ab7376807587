"""
Per-event pipeline.

    gate -> CID codec -> metadata -> (County only) walk -> materialize -> reconcile

Callers get a ProcessingResult back; fatal conditions are reported through its
status, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from parcelgraph.codec import bytes32_to_cid
from parcelgraph.gateway.resolver import Fetcher
from parcelgraph.ingestion.events import EventGate, InboundEvent
from parcelgraph.ingestion.materializer import EntityMaterializer, EventWorkingSet
from parcelgraph.ingestion.metadata import MetadataDispatcher
from parcelgraph.ingestion.reconcile import IdentityReconciler
from parcelgraph.ingestion.walker import BranchFailure, GraphWalker
from parcelgraph.shared.config import Config
from parcelgraph.shared.errors import MalformedInputError, TransientFetchError
from parcelgraph.shared.observability import get_logger, new_correlation_id
from parcelgraph.shared.observability.metrics import events_processed_total
from parcelgraph.store.base import RecordStore, TrackingStore

logger = get_logger(__name__)


class ProcessingStatus(str, Enum):
    MATERIALIZED = "materialized"
    REJECTED_SUBMITTER = "rejected_submitter"
    DROPPED_LABEL = "dropped_label"
    MALFORMED_INPUT = "malformed_input"
    METADATA_UNAVAILABLE = "metadata_unavailable"


@dataclass
class RecordWrite:
    entity_type: str
    id: str


@dataclass
class ProcessingResult:
    status: ProcessingStatus
    cid: Optional[str] = None
    label: Optional[str] = None
    root_id: Optional[str] = None
    id_source: Optional[str] = None
    writes: List[RecordWrite] = field(default_factory=list)
    failures: List[BranchFailure] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ProcessingStatus.MATERIALIZED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "cid": self.cid,
            "label": self.label,
            "root_id": self.root_id,
            "id_source": self.id_source,
            "writes": [{"entity_type": w.entity_type, "id": w.id} for w in self.writes],
            "failures": [f.to_dict() for f in self.failures],
            "error": self.error,
        }


class EventProcessor:
    """
    Runs inbound events through resolution and materialization.

    The fetcher (normally a GatewayResolver) and store are injected so the
    same processor can be driven by a chain listener, the CLI or tests.
    """

    def __init__(self, fetcher: Fetcher, store: RecordStore, gate: EventGate):
        self._fetcher = fetcher
        self._store = store
        self._gate = gate

    @classmethod
    def from_config(
        cls,
        config: Config,
        fetcher: Fetcher,
        store: RecordStore,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "EventProcessor":
        return cls(fetcher, store, EventGate.from_config(config, environ))

    async def process(
        self, event: Union[InboundEvent, Mapping[str, Any]]
    ) -> ProcessingResult:
        new_correlation_id()
        try:
            parsed = InboundEvent.parse(event)
        except MalformedInputError as exc:
            logger.error("event_malformed", error=str(exc))
            return self._finish(
                ProcessingResult(ProcessingStatus.MALFORMED_INPUT, error=str(exc))
            )

        with structlog.contextvars.bound_contextvars(
            property_hash=parsed.property_hash, event_kind=parsed.kind.value
        ):
            return self._finish(await self._process(parsed))

    async def _process(self, event: InboundEvent) -> ProcessingResult:
        if not self._gate.allows(event):
            return ProcessingResult(ProcessingStatus.REJECTED_SUBMITTER)

        try:
            cid = bytes32_to_cid(event.content_hash)
        except MalformedInputError as exc:
            logger.error("content_hash_malformed", content_hash=event.content_hash)
            return ProcessingResult(ProcessingStatus.MALFORMED_INPUT, error=str(exc))

        try:
            metadata = await MetadataDispatcher(self._fetcher).dispatch(cid)
        except TransientFetchError as exc:
            logger.error("metadata_unavailable", cid=cid, error=str(exc))
            return ProcessingResult(
                ProcessingStatus.METADATA_UNAVAILABLE, cid=cid, error=str(exc)
            )

        if not metadata.accepted:
            logger.info("event_label_dropped", cid=cid, label=metadata.label)
            return ProcessingResult(
                ProcessingStatus.DROPPED_LABEL, cid=cid, label=metadata.label
            )

        store = TrackingStore(self._store)
        walk = await GraphWalker(self._fetcher).walk(metadata.edges)

        working_set = EventWorkingSet(provisional_id=event.property_hash)
        await EntityMaterializer(store).materialize(walk, working_set)

        root = await IdentityReconciler(store).reconcile(
            working_set,
            {
                "submitter": event.submitter,
                "content_hash": event.content_hash,
                "cid": cid,
                "label": metadata.label,
                "timestamp": event.timestamp,
                "event_kind": event.kind.value,
            },
        )

        return ProcessingResult(
            ProcessingStatus.MATERIALIZED,
            cid=cid,
            label=metadata.label,
            root_id=root.id,
            id_source=root.id_source,
            writes=[RecordWrite(entity_type, record_id) for entity_type, record_id in store.writes],
            failures=walk.failures,
        )

    @staticmethod
    def _finish(result: ProcessingResult) -> ProcessingResult:
        events_processed_total.labels(status=result.status.value).inc()
        logger.info(
            "event_processed",
            status=result.status.value,
            cid=result.cid,
            root_id=result.root_id,
            writes=len(result.writes),
            failures=len(result.failures),
        )
        return result


async def process_event(
    event: Union[InboundEvent, Mapping[str, Any]],
    fetcher: Fetcher,
    store: RecordStore,
    config: Config,
    environ: Optional[Mapping[str, str]] = None,
) -> ProcessingResult:
    """Process a single event with collaborators built from `config`."""
    return await EventProcessor.from_config(config, fetcher, store, environ).process(event)
