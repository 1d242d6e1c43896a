# tokenshield/utils/cache.py
"""
In-process TTL cache shared by all provider adapters.

Entries expire per key; the store is capacity-bounded and evicts expired entries
first, then the oldest-inserted entry. Keys are built with cache_key() so the same
logical request always lands in the same slot.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

# Presets in seconds, picked by how fast the upstream data moves.
TTL_SECONDS = {
    "short": 15,             # price / quote
    "medium": 5 * 60,        # holders / pools
    "long": 6 * 60 * 60,     # static metadata
}

_MISSING = object()


def ttl_for(preset: str) -> float:
    if preset not in TTL_SECONDS:
        raise ValueError(f"Unknown TTL preset: {preset}")
    return float(TTL_SECONDS[preset])


def cache_key(provider: str, method: str, params: Mapping[str, Any]) -> str:
    parts = [f"{k}={params[k]}" for k in sorted(params)]
    return f"provider:{provider}:{method}:{'&'.join(parts)}"


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float


class TTLCache:
    def __init__(self, max_entries: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max(1, int(max_entries))
        self.clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            now = self.clock()
            if key in self._store:
                # re-insert so insertion order tracks the latest write
                del self._store[key]
            elif len(self._store) >= self.max_entries:
                self._evict_expired_locked(now)
                if len(self._store) >= self.max_entries:
                    oldest = next(iter(self._store))
                    del self._store[oldest]
                    self._evictions += 1
            self._store[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return default
            if self.clock() >= entry.expires_at:
                del self._store[key]
                self._misses += 1
                self._evictions += 1
                return default
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def evict_expired(self) -> int:
        with self._lock:
            return self._evict_expired_locked(self.clock())

    def _evict_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._store.items() if now >= e.expires_at]
        for k in expired:
            del self._store[k]
        self._evictions += len(expired)
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._store)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "size": len(self._store),
                "max_size": self.max_entries,
            }
