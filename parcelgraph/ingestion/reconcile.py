"""
Identity reconciliation.

The RootRecord starts out keyed by the event's property hash. If the Property
leaf reveals a parcel identifier, the record and every repeatable record of
the event are written under that identifier instead, and a RootAlias record
keyed by the property hash remembers the adoption. Later events for the same
property hash that carry no parcel identifier follow the alias, so a lineage
is re-keyed at most once. Records already stored under either id are merged,
never deleted, so replays converge.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from parcelgraph.ingestion.materializer import EventWorkingSet, record_payload
from parcelgraph.ingestion.schemas import RootRecord
from parcelgraph.shared.observability import get_logger
from parcelgraph.shared.observability.metrics import records_written_total
from parcelgraph.store.base import RecordStore

logger = get_logger(__name__)

ROOT_ENTITY_TYPE = "RootRecord"
ALIAS_ENTITY_TYPE = "RootAlias"
ID_SOURCE_PARCEL = "parcel_identifier"
ID_SOURCE_HASH = "property_hash"


def resolve_final_id(
    working_set: EventWorkingSet, adopted_id: Optional[str] = None
) -> Tuple[str, str]:
    """
    Return (final id, id source) for an event's RootRecord.

    A parcel identifier found by this event wins; otherwise a canonical id
    adopted by an earlier event for the same property hash is reused.
    """
    parcel = working_set.parcel_identifier or adopted_id
    if parcel and parcel != working_set.provisional_id:
        return parcel, ID_SOURCE_PARCEL
    return working_set.provisional_id, ID_SOURCE_HASH


def merge_root(
    existing: Optional[Dict[str, Any]], update: Dict[str, Any]
) -> Dict[str, Any]:
    """Stored values form the base; this event's non-None values win."""
    merged = dict(existing or {})
    merged.update({k: v for k, v in update.items() if v is not None})
    return merged


class IdentityReconciler:
    def __init__(self, store: RecordStore):
        self._store = store

    async def adopted_id(self, provisional_id: str) -> Optional[str]:
        alias = await self._store.get(ALIAS_ENTITY_TYPE, provisional_id)
        return alias.get("canonical_id") if alias else None

    async def reconcile(
        self, working_set: EventWorkingSet, root_fields: Dict[str, Any]
    ) -> RootRecord:
        """
        Commit staged repeatable records and upsert the RootRecord.

        Args:
            working_set: state collected by the materializer
            root_fields: event-level RootRecord fields (submitter, cid, ...)
        """
        provisional_id = working_set.provisional_id
        adopted = await self.adopted_id(provisional_id)
        final_id, id_source = resolve_final_id(working_set, adopted)

        for entity_type, record in working_set.staged:
            committed = record.model_copy(update={"root_id": final_id})
            await self._store.set(entity_type, record_payload(committed))
            records_written_total.labels(entity_type=entity_type).inc()

        existing = None
        if final_id != provisional_id:
            existing = await self._store.get(ROOT_ENTITY_TYPE, provisional_id)
            if adopted != final_id:
                await self._store.set(
                    ALIAS_ENTITY_TYPE, {"id": provisional_id, "canonical_id": final_id}
                )
                records_written_total.labels(entity_type=ALIAS_ENTITY_TYPE).inc()
        current = await self._store.get(ROOT_ENTITY_TYPE, final_id)
        existing = merge_root(existing, current or {})

        update = {
            **root_fields,
            **working_set.root_fields,
            "property_hash": provisional_id,
            "id_source": id_source,
        }
        merged = merge_root(existing, update)
        merged["id"] = final_id

        root = RootRecord.model_validate(merged)
        await self._store.set(ROOT_ENTITY_TYPE, root.model_dump(mode="json"))
        records_written_total.labels(entity_type=ROOT_ENTITY_TYPE).inc()

        logger.info(
            "root_record_reconciled",
            root_id=final_id,
            id_source=id_source,
            rekeyed=final_id != provisional_id,
            followed_alias=adopted is not None and working_set.parcel_identifier is None,
            repeatable_records=len(working_set.staged),
        )
        return root
