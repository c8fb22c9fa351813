"""
Shared cache tier.

``SharedCache`` is the contract the tiered cache talks to; ``RedisSharedCache``
implements it on ``redis.asyncio``. Implementations may raise; the tiered
cache bounds, catches and logs every call.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

import redis.asyncio as redis
from redis.exceptions import RedisError

from unified_kms.exception import SharedCacheError

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


@runtime_checkable
class SharedCache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int) -> None: ...

    async def delete_pattern(self, pattern: str) -> int: ...

    async def close(self) -> None: ...


def _escape_glob(pattern: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", pattern)


class RedisSharedCache:
    """
    Redis-backed shared tier.

    Values are stored as JSON strings with a native Redis TTL. Pattern
    invalidation walks matching keys with SCAN rather than KEYS.
    """

    def __init__(
        self,
        *,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "kms:",
        client: redis.Redis | None = None,
    ) -> None:
        self.key_prefix = key_prefix
        self._redis_url = redis_url
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
            logger.info(f"Shared cache client created: prefix={self.key_prefix}")
        return self._client

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._get_client().get(self.key_prefix + key)
        except RedisError as exc:
            raise SharedCacheError(f"shared cache read failed: {exc}", stage="cache", cause=exc) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding undecodable shared cache value: {key}")
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        data = json.dumps(value, ensure_ascii=False)
        try:
            await self._get_client().set(self.key_prefix + key, data, ex=int(ttl))
        except RedisError as exc:
            raise SharedCacheError(f"shared cache write failed: {exc}", stage="cache", cause=exc) from exc

    async def delete_pattern(self, pattern: str) -> int:
        client = self._get_client()
        match = f"{_escape_glob(self.key_prefix)}*{_escape_glob(pattern)}*"
        deleted = 0
        try:
            cursor = 0
            while True:
                cursor, keys = await client.scan(cursor, match=match, count=100)
                if keys:
                    deleted += await client.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as exc:
            raise SharedCacheError(
                f"shared cache invalidation failed: {exc}", stage="cache", cause=exc
            ) from exc
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self._get_client().ping())
        except RedisError as exc:
            logger.warning(f"Shared cache ping failed: {exc}")
            return False

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("Shared cache client closed")
