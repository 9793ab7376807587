"""
Entity materializer.

Singleton leaves are upserted as soon as they are decoded and linked from the
RootRecord. Repeatable leaves are only staged here: their root foreign key
is not final until the Property leaf has been seen, so the identity
reconciler commits them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from parcelgraph.ingestion.registry import PROPERTY
from parcelgraph.ingestion.schemas import LeafRecord
from parcelgraph.ingestion.walker import WalkResult
from parcelgraph.shared.observability import get_logger
from parcelgraph.shared.observability.metrics import records_written_total
from parcelgraph.store.base import RecordStore

logger = get_logger(__name__)


@dataclass
class EventWorkingSet:
    """Per-event scratch state between materialization and reconciliation."""

    provisional_id: str
    root_fields: Dict[str, str] = field(default_factory=dict)
    staged: List[Tuple[str, LeafRecord]] = field(default_factory=list)
    parcel_identifier: Optional[str] = None

    def stage(self, entity_type: str, record: LeafRecord) -> None:
        self.staged.append(
            (entity_type, record.model_copy(update={"root_id": self.provisional_id}))
        )

    def link(self, root_field: str, record_id: str) -> bool:
        """Set a RootRecord foreign key unless an earlier leaf already did."""
        if root_field in self.root_fields:
            return False
        self.root_fields[root_field] = record_id
        return True


def record_payload(record: LeafRecord) -> dict:
    return record.model_dump(mode="json", by_alias=False)


class EntityMaterializer:
    def __init__(self, store: RecordStore):
        self._store = store

    async def materialize(self, walk: WalkResult, working_set: EventWorkingSet) -> None:
        for leaf in walk.leaves:
            kind = leaf.target.kind
            record = leaf.record

            if kind.repeatable:
                working_set.stage(kind.entity_type, record)
                continue

            await self._store.set(kind.entity_type, record_payload(record))
            records_written_total.labels(entity_type=kind.entity_type).inc()
            if not working_set.link(kind.root_field, record.id):
                logger.debug(
                    "root_field_already_linked",
                    root_field=kind.root_field,
                    kept=working_set.root_fields[kind.root_field],
                    ignored=record.id,
                )

            if kind is PROPERTY and working_set.parcel_identifier is None:
                parcel = (record.parcel_identifier or "").strip()
                if parcel:
                    working_set.parcel_identifier = parcel

        logger.info(
            "leaves_materialized",
            singletons=len(working_set.root_fields),
            staged=len(working_set.staged),
            parcel_identifier=working_set.parcel_identifier,
        )
