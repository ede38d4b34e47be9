from __future__ import annotations

import base64
import json
import time
from collections.abc import Callable
from dataclasses import dataclass

from .connectors.base import Paper, SearchFilters


@dataclass
class CacheEntry:
    results: list[Paper]
    total: int
    timestamp: float  # seconds, from the cache clock


def cache_key(query: str, filters: SearchFilters) -> str:
    """Deterministic, order-sensitive encoding of a (query, filters) pair."""
    payload = json.dumps({"query": query, "filters": filters.to_dict()}, ensure_ascii=False)
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


class SearchCache:
    """Best-effort memoization of complete searches.

    Entries older than the TTL are treated as misses and overwritten on the next
    write; nothing is evicted proactively and there is no capacity bound.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, query: str, filters: SearchFilters) -> CacheEntry | None:
        entry = self._entries.get(cache_key(query, filters))
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            return None
        return entry

    def set(self, query: str, filters: SearchFilters, results: list[Paper]) -> CacheEntry:
        entry = CacheEntry(results=list(results), total=len(results), timestamp=self._clock())
        self._entries[cache_key(query, filters)] = entry
        return entry

    def __len__(self) -> int:
        return len(self._entries)
