"""Record store interface. Records are JSON-compatible dicts with an "id" key."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple

Record = Dict[str, Any]


class RecordStore(Protocol):
    async def get(self, entity_type: str, record_id: str) -> Optional[Record]: ...

    async def set(self, entity_type: str, record: Record) -> None:
        """Create or replace the record under record["id"]."""
        ...


class TrackingStore:
    """Wraps a store and remembers every write made through it, in order."""

    def __init__(self, inner: RecordStore):
        self._inner = inner
        self.writes: List[Tuple[str, str]] = []

    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        return await self._inner.get(entity_type, record_id)

    async def set(self, entity_type: str, record: Record) -> None:
        await self._inner.set(entity_type, record)
        self.writes.append((entity_type, record["id"]))
