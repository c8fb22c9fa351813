"""
In-memory backend adapter.

Keeps records in a dict; intended for development and tests. Any of the
three backend roles can be served by an instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any

from unified_kms.backends.base import BackendAdapter, query_terms, record_to_item
from unified_kms.models import BackendName, KnowledgeQuery, KnowledgeRecord, ResultItem

logger = logging.getLogger(__name__)


class InMemoryBackend(BackendAdapter):
    def __init__(self, name: BackendName) -> None:
        super().__init__(name)
        self._records: dict[str, KnowledgeRecord] = {}
        self._lock = asyncio.Lock()

    async def _initialize(self) -> None:
        logger.info(f"In-memory backend ready: {self.name.value}")

    async def _close(self) -> None:
        self._records.clear()

    async def store(self, record: KnowledgeRecord) -> str:
        async with self._lock:
            self._records[record.id] = record
        return record.id

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        terms = query_terms(query.text)
        async with self._lock:
            records = list(self._records.values())

        matched = [
            record
            for record in records
            if query.filters.matches(record) and _matches_terms(record.content, terms)
        ]
        matched.sort(key=lambda r: (r.confidence, r.created_at), reverse=True)
        return [
            record_to_item(record, self.name, include_links=query.options.include_links)
            for record in matched[: query.options.max_results]
        ]

    async def find_by_id(self, record_id: str) -> KnowledgeRecord | None:
        async with self._lock:
            return self._records.get(record_id)

    async def find_related(self, record_id: str, max_depth: int = 2) -> list[ResultItem]:
        """Breadth-first walk over outgoing and incoming links."""
        async with self._lock:
            records = dict(self._records)
        if record_id not in records:
            return []

        neighbours: dict[str, set[str]] = {key: set() for key in records}
        for record in records.values():
            for link in record.links:
                if link.target_id in records:
                    neighbours[record.id].add(link.target_id)
                    neighbours[link.target_id].add(record.id)

        seen = {record_id}
        frontier = [record_id]
        related: list[tuple[int, KnowledgeRecord]] = []
        for distance in range(1, max_depth + 1):
            next_frontier: list[str] = []
            for node in frontier:
                for other in sorted(neighbours[node]):
                    if other in seen:
                        continue
                    seen.add(other)
                    next_frontier.append(other)
                    related.append((distance, records[other]))
            frontier = next_frontier

        related.sort(key=lambda pair: (pair[0], -pair[1].confidence))
        return [
            record_to_item(record, self.name).model_copy(
                update={"attributes": {**record.attributes, "distance": distance}}
            )
            for distance, record in related
        ]

    async def stats(self) -> dict[str, Any]:
        async with self._lock:
            records = list(self._records.values())
        return {
            "backend": self.name.value,
            "type": "memory",
            "total_records": len(records),
            "by_category": dict(Counter(r.category.value for r in records)),
            "total_links": sum(len(r.links) for r in records),
        }


def _matches_terms(content: str, terms: list[str]) -> bool:
    if not terms:
        return True
    lowered = content.lower()
    return any(term in lowered for term in terms)
