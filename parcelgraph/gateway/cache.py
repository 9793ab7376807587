"""
In-process LRU cache for gateway payloads, keyed by CID.

CID content is immutable, so entries never expire; size is the only bound.
"""

from collections import OrderedDict
from typing import Any, Dict, Optional

from parcelgraph.shared.observability.metrics import cid_cache_lookups_total


class CidCache:
    """In-process LRU cache with size limit."""

    def __init__(self, max_size: int = 10_000):
        self.max_size = max_size
        self._cache: "OrderedDict[str, Any]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, cid: str) -> Optional[Any]:
        """Get payload from cache if present."""
        if cid not in self._cache:
            self._misses += 1
            cid_cache_lookups_total.labels(result="miss").inc()
            return None

        # Move to end (most recently used)
        self._cache.move_to_end(cid)
        self._hits += 1
        cid_cache_lookups_total.labels(result="hit").inc()
        return self._cache[cid]

    def set(self, cid: str, payload: Any) -> None:
        """Store payload, evicting the least recently used entry when full."""
        if cid in self._cache:
            self._cache.move_to_end(cid)
        self._cache[cid] = payload
        while len(self._cache) > self.max_size:
            self._cache.popitem(last=False)

    def __contains__(self, cid: str) -> bool:
        return cid in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
        }
