"""
Backend adapter contract
"""

from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any

from unified_kms.models import BackendName, KnowledgeQuery, KnowledgeRecord, ResultItem

_TERM = re.compile(r"\w+")


def query_terms(text: str) -> list[str]:
    return [term.lower() for term in _TERM.findall(text)]


def link_dicts(record: KnowledgeRecord) -> list[dict[str, Any]]:
    return [link.model_dump(mode="json") for link in record.links]


def record_to_item(
    record: KnowledgeRecord,
    backend: BackendName,
    *,
    include_links: bool = True,
    confidence: float | None = None,
) -> ResultItem:
    return ResultItem(
        id=record.id,
        content=record.content,
        confidence=record.confidence if confidence is None else confidence,
        attributes=dict(record.attributes),
        timestamp=record.created_at,
        category=record.category,
        domain=record.domain,
        owner_id=record.owner_id,
        source_backend=backend,
        links=link_dicts(record) if include_links else [],
    )


class BackendAdapter(ABC):
    """Uniform contract over one concrete store."""

    def __init__(self, name: BackendName) -> None:
        self._name = name
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def name(self) -> BackendName:
        return self._name

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            await self._initialize()
            self._initialized = True

    async def close(self) -> None:
        if not self._initialized:
            return
        await self._close()
        self._initialized = False

    async def _initialize(self) -> None:
        """Open connections; override when the store needs it."""

    async def _close(self) -> None:
        """Release connections; override when the store needs it."""

    @abstractmethod
    async def store(self, record: KnowledgeRecord) -> str:
        """Persist the record and return its id."""

    @abstractmethod
    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        """Return at most ``query.options.max_results`` rows."""

    @abstractmethod
    async def stats(self) -> dict[str, Any]:
        """Backend-specific counters."""
