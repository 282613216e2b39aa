"""
db_gateway.db.cache

Short-lived read cache.

Responsibilities:
- Remember sampled rows per (abbreviation, operation, limit) for a fixed TTL.
- Purge expired entries lazily on lookup.
- Drop every entry of one abbreviation after a write to it.
- Refuse to store rows sampled before a write that has since landed.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, NamedTuple

DEFAULT_TTL_SECONDS = 3600.0


class CacheKey(NamedTuple):
    abbreviation: str
    operation: str
    limit: int


class CacheEntry(NamedTuple):
    rows: list[dict[str, Any]]
    fetched_at: float


class QueryCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._generations: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: CacheKey) -> list[dict[str, Any]] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            del self._entries[key]
            return None
        return entry.rows

    def generation(self, abbreviation: str) -> int:
        """Write generation of `abbreviation`; bumped by every `invalidate`."""
        return self._generations.get(abbreviation, 0)

    def put(
        self,
        key: CacheKey,
        rows: list[dict[str, Any]],
        *,
        generation: int | None = None,
    ) -> bool:
        """
        Store `rows` under `key`.

        When `generation` is given and a write to the same abbreviation has
        happened since it was read, the rows are stale and nothing is stored.
        Returns whether the entry was stored.
        """
        if generation is not None and generation != self.generation(key.abbreviation):
            return False
        self._entries[key] = CacheEntry(rows=rows, fetched_at=self._clock())
        return True

    def invalidate(self, abbreviation: str) -> int:
        """Remove every entry scoped to `abbreviation`; returns how many were dropped."""
        self._generations[abbreviation] = self.generation(abbreviation) + 1
        stale = [key for key in self._entries if key.abbreviation == abbreviation]
        for key in stale:
            del self._entries[key]
        return len(stale)
