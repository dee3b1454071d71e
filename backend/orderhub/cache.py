"""In-process result cache for order queries and statistics.

Entries carry their own TTL and are only checked when read: an expired
entry stays in the map until the next lookup of its key. ``clear()`` drops
everything and is what every order mutation calls.

Set ``max_entries`` to bound the map; the least recently used entry is then
evicted when a new key would overflow it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, MutableMapping, Optional, TypeVar

from cachetools import LRUCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


def canonical_key(namespace: str, parts: Mapping[str, Any]) -> str:
    """Serialize ``parts`` so that equal mappings always give the same key."""
    body = json.dumps(parts, sort_keys=True, separators=(",", ":"), default=str)
    return f"{namespace}:{body}"


@dataclass
class CacheEntry:
    key: str
    payload: Any
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    clears: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "clears": self.clears,
            "hit_rate": round(self.hit_rate, 4),
        }


class _BoundedEntries(LRUCache):
    def __init__(self, maxsize: int, on_evict: Callable[[str], None]) -> None:
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self):
        key, entry = super().popitem()
        self._on_evict(key)
        return key, entry


class ResultCache:
    """Key/value store with per-entry TTL and lazy expiry."""

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self.stats = CacheStats()
        # bumped on every clear() so in-flight fills can detect a newer write
        self.generation = 0
        self._entries: MutableMapping[str, CacheEntry]
        if max_entries:
            self._entries = _BoundedEntries(max_entries, self._record_eviction)
        else:
            self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_valid(self._clock())

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            self.stats.expirations += 1
            self.stats.misses += 1
            logger.debug("cache entry expired: %s", key)
            return None
        self.stats.hits += 1
        return entry.payload

    def set(self, key: str, payload: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        self._entries[key] = CacheEntry(key=key, payload=payload, timestamp=self._clock(), ttl=ttl)

    def clear(self) -> None:
        dropped = len(self._entries)
        self._entries.clear()
        self.stats.clears += 1
        self.generation += 1
        if dropped:
            logger.debug("cache cleared, %d entries dropped", dropped)

    def info(self) -> Dict[str, Any]:
        return {"size": len(self._entries), "max_entries": self.max_entries, **self.stats.to_dict()}

    def _record_eviction(self, key: str) -> None:
        self.stats.evictions += 1
        logger.debug("cache entry evicted: %s", key)


class SingleFlight:
    """Collapse concurrent calls sharing a key onto one in-flight coroutine."""

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # mark retrieved so a follower-less failure does not warn
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)
