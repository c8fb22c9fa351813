"""
Two-tier cache

Fast tier: process-local, always consulted first.
Shared tier: optional and best-effort. Every call is bounded by
``shared_timeout_seconds``; failures are logged and counted, never raised.
A shared hit is promoted into the fast tier with a capped TTL.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from unified_kms.cache.config import CacheConfig
from unified_kms.cache.fast_tier import FastTier
from unified_kms.cache.shared_tier import SharedCache
from unified_kms.models import CacheTier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TieredCache:
    """Fast tier plus optional shared tier behind a single get/set/invalidate API."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        shared: SharedCache | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self.fast = FastTier(max_entries=self.config.fast_max_entries, clock=clock)
        self.shared = shared
        self._shared_hits = 0
        self._shared_misses = 0
        self._shared_errors = 0
        self._shared_available = shared is not None
        self._lookups = 0
        self._sweeper: asyncio.Task[None] | None = None

    def ttl_for_tier(self, tier: CacheTier) -> int:
        if tier == CacheTier.HOT:
            return self.config.hot_ttl_seconds
        if tier == CacheTier.WARM:
            return self.config.warm_ttl_seconds
        if tier == CacheTier.COLD:
            return self.config.cold_ttl_seconds
        return 0

    async def get(self, key: str) -> Any | None:
        """Return the cached value or None on a miss in both tiers."""
        self._lookups += 1
        entry = self.fast.get(key)
        if entry is not None:
            return entry.value

        if self.shared is None:
            return None

        value = await self._call_shared("get", key, self.shared.get(key))
        if value is None:
            self._shared_misses += 1
            return None

        self._shared_hits += 1
        self.fast.set(key, value, self.config.fast_ttl_cap_seconds, CacheTier.HOT)
        logger.debug(
            f"Promoted shared cache entry: {key}",
            extra={"event": "cache.promoted"},
        )
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        tier: CacheTier = CacheTier.WARM,
    ) -> bool:
        """Write through both tiers. Returns False when nothing was cached."""
        if tier == CacheTier.SKIP or value is None:
            return False
        if ttl is None:
            ttl = self.ttl_for_tier(tier)
        if ttl <= 0:
            return False

        self.fast.set(key, value, min(ttl, self.config.fast_ttl_cap_seconds), tier)
        if self.shared is not None:
            await self._call_shared("set", key, self.shared.set(key, value, math.ceil(ttl)))
        return True

    async def invalidate(self, pattern: str) -> int:
        """Drop every key containing ``pattern`` from both tiers."""
        removed = self.fast.invalidate(pattern)
        if self.shared is not None:
            shared_removed = await self._call_shared(
                "invalidate", pattern, self.shared.delete_pattern(pattern)
            )
            removed += shared_removed or 0
        logger.info(
            f"Cache invalidated: pattern={pattern!r}, removed={removed}",
            extra={"event": "cache.invalidated", "data": {"removed": removed}},
        )
        return removed

    def stats(self) -> dict[str, Any]:
        fast = self.fast.stats()
        shared_lookups = self._shared_hits + self._shared_misses
        hits = fast["hits"] + self._shared_hits
        return {
            "fast": fast,
            "shared": {
                "configured": self.shared is not None,
                "available": self._shared_available,
                "hits": self._shared_hits,
                "misses": self._shared_misses,
                "errors": self._shared_errors,
                "hit_rate": self._shared_hits / shared_lookups if shared_lookups else 0.0,
            },
            "overall": {
                "lookups": self._lookups,
                "hits": hits,
                "efficiency": hits / self._lookups if self._lookups else 0.0,
            },
        }

    def start(self) -> None:
        """Start the periodic fast tier sweep on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        if self.shared is not None:
            try:
                await self.shared.close()
            except Exception as exc:
                logger.warning(f"Shared cache close failed: {exc}")
        self.fast.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval_seconds)
            removed = self.fast.sweep()
            if removed:
                logger.debug(
                    f"Fast tier sweep removed {removed} entries",
                    extra={"event": "cache.swept"},
                )

    async def _call_shared(self, operation: str, key: str, call: Awaitable[T]) -> T | None:
        try:
            result = await asyncio.wait_for(call, timeout=self.config.shared_timeout_seconds)
        except Exception as exc:
            self._shared_errors += 1
            if self._shared_available:
                logger.warning(
                    f"Shared cache unavailable during {operation}: {exc!r}",
                    extra={
                        "event": "cache.shared_unavailable",
                        "data": {"operation": operation, "key": key},
                    },
                )
            else:
                logger.debug(f"Shared cache {operation} skipped: {exc!r}")
            self._shared_available = False
            return None
        if not self._shared_available:
            logger.info(
                "Shared cache reachable again",
                extra={"event": "cache.shared_recovered"},
            )
        self._shared_available = True
        return result
