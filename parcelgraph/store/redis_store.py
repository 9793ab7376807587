"""
Redis-backed record store.

Each record is a JSON string under `{prefix}:{entity_type}:{id}`. SET is
create-or-replace, which is exactly the store contract.
"""

from __future__ import annotations

import json
from typing import Optional

import redis.asyncio as aioredis

from parcelgraph.shared.observability import get_logger
from parcelgraph.store.base import Record

logger = get_logger(__name__)


class RedisRecordStore:
    def __init__(self, client: aioredis.Redis, key_prefix: str = "parcelgraph"):
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "parcelgraph") -> "RedisRecordStore":
        client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        return cls(client, key_prefix=key_prefix)

    def key(self, entity_type: str, record_id: str) -> str:
        return f"{self._prefix}:{entity_type}:{record_id}"

    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        raw = await self._client.get(self.key(entity_type, record_id))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, entity_type: str, record: Record) -> None:
        if not record.get("id"):
            raise ValueError(f"{entity_type} record has no id")
        key = self.key(entity_type, record["id"])
        await self._client.set(key, json.dumps(record, sort_keys=True))
        logger.debug("record_stored", key=key)

    async def aclose(self) -> None:
        await self._client.aclose()
