"""
Process-local cache tier.

Entries carry an absolute expiry on the injected monotonic clock. Expired
entries are dropped lazily on read, on every write, and by the periodic
sweep. Thread-safe.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from unified_kms.models import CacheTier


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float
    tier: CacheTier


class FastTier:
    def __init__(
        self,
        *,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry

    def set(self, key: str, value: Any, ttl: float, tier: CacheTier) -> CacheEntry:
        with self._lock:
            self._sweep_locked()
            entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl, tier=tier)
            self._entries[key] = entry
            self._evict_overflow_locked()
            return entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate(self, pattern: str) -> int:
        """Drop every key containing ``pattern``."""
        with self._lock:
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "hits": self.hits,
                "misses": self.misses,
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "evictions": self.evictions,
                "hit_rate": self.hits / lookups if lookups else 0.0,
            }

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [key for key, entry in list(self._entries.items()) if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _evict_overflow_locked(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries, key=lambda k: self._entries[k].expires_at)[:overflow]
        for key in oldest:
            del self._entries[key]
        self.evictions += overflow
