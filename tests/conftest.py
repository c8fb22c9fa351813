"""
Shared test doubles.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from unified_kms.backends.base import BackendAdapter
from unified_kms.backends.memory import InMemoryBackend
from unified_kms.backends.registry import BackendRegistry
from unified_kms.models import BackendName, KnowledgeQuery, KnowledgeRecord, ResultItem


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyBackend(InMemoryBackend):
    """In-memory backend that can be told to fail or stall."""

    def __init__(
        self,
        name: BackendName,
        *,
        fail_store: bool = False,
        fail_search: bool = False,
        delay: float = 0.0,
    ) -> None:
        super().__init__(name)
        self.fail_store = fail_store
        self.fail_search = fail_search
        self.delay = delay
        self.store_calls = 0
        self.search_calls = 0

    async def store(self, record: KnowledgeRecord) -> str:
        self.store_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_store:
            raise ConnectionError(f"{self.name.value} unavailable")
        return await super().store(record)

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        self.search_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_search:
            raise ConnectionError(f"{self.name.value} unavailable")
        return await super().search(query)


class StaticBackend(BackendAdapter):
    """Returns a fixed result list from every search."""

    def __init__(self, name: BackendName, items: list[ResultItem]) -> None:
        super().__init__(name)
        self.items = items

    async def store(self, record: KnowledgeRecord) -> str:
        return record.id

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        return list(self.items)

    async def stats(self) -> dict[str, Any]:
        return {"backend": self.name.value, "total_records": len(self.items)}


class FakeSharedCache:
    """Dict-backed shared tier that can be switched off or slowed down."""

    def __init__(self, *, available: bool = True, delay: float = 0.0) -> None:
        self.available = available
        self.delay = delay
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False

    async def _check(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.available:
            raise ConnectionError("shared cache down")

    async def get(self, key: str) -> Any | None:
        await self._check()
        return self.data.get(key)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self._check()
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete_pattern(self, pattern: str) -> int:
        await self._check()
        doomed = [key for key in self.data if pattern in key]
        for key in doomed:
            del self.data[key]
        return len(doomed)

    async def close(self) -> None:
        self.closed = True


def memory_registry(**overrides: BackendAdapter) -> BackendRegistry:
    """Registry of in-memory backends; keyword overrides replace a role."""
    adapters: dict[BackendName, BackendAdapter] = {
        BackendName.SEMANTIC_MEMORY: InMemoryBackend(BackendName.SEMANTIC_MEMORY),
        BackendName.GRAPH: InMemoryBackend(BackendName.GRAPH),
        BackendName.DOCUMENT: InMemoryBackend(BackendName.DOCUMENT),
    }
    role_names = {
        "semantic": BackendName.SEMANTIC_MEMORY,
        "graph": BackendName.GRAPH,
        "document": BackendName.DOCUMENT,
    }
    for role, adapter in overrides.items():
        adapters[role_names[role]] = adapter
    return BackendRegistry(adapters.values())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
