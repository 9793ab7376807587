from __future__ import annotations

import copy
from typing import Dict, List, Optional

from parcelgraph.store.base import Record


class InMemoryRecordStore:
    """Dict-backed store for tests and single-process runs."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Record]] = {}

    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        record = self._records.get(entity_type, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def set(self, entity_type: str, record: Record) -> None:
        if not record.get("id"):
            raise ValueError(f"{entity_type} record has no id")
        self._records.setdefault(entity_type, {})[record["id"]] = copy.deepcopy(record)

    def all(self, entity_type: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._records.get(entity_type, {}).values()]

    def count(self, entity_type: Optional[str] = None) -> int:
        if entity_type is not None:
            return len(self._records.get(entity_type, {}))
        return sum(len(records) for records in self._records.values())
