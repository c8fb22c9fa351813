"""
In-memory backend tests

Module under test: unified_kms.backends.memory
"""

from datetime import datetime, timedelta, timezone

import pytest

from unified_kms.backends.memory import InMemoryBackend
from unified_kms.models import (
    BackendName,
    ContentCategory,
    KnowledgeQuery,
    KnowledgeRecord,
    RecordLink,
    SearchFilters,
    SearchOptions,
    TimeRange,
)


def _record(record_id: str, content: str, *targets: str, confidence: float = 0.5) -> KnowledgeRecord:
    return KnowledgeRecord(
        id=record_id,
        content=content,
        category=ContentCategory.INSIGHT,
        confidence=confidence,
        links=[RecordLink(target_id=t, relation_type="related_to") for t in targets],
    )


class TestInMemoryBackend:
    @pytest.mark.asyncio
    async def test_search_matches_any_term_and_filters(self):
        backend = InMemoryBackend(BackendName.GRAPH)
        await backend.store(_record("a", "OAuth token refresh", confidence=0.4))
        await backend.store(_record("b", "debugging checklist", confidence=0.9))
        await backend.store(_record("c", "billing note"))

        items = await backend.search(KnowledgeQuery(text="oauth debugging"))
        confident = await backend.search(
            KnowledgeQuery(text="oauth debugging", filters=SearchFilters(min_confidence=0.5))
        )
        limited = await backend.search(
            KnowledgeQuery(text="oauth debugging", options=SearchOptions(max_results=1))
        )

        assert [i.id for i in items] == ["b", "a"]
        assert [i.id for i in confident] == ["b"]
        assert [i.id for i in limited] == ["b"]

    @pytest.mark.asyncio
    async def test_find_related_walks_links_both_ways(self):
        backend = InMemoryBackend(BackendName.GRAPH)
        await backend.store(_record("a", "root", "b"))
        await backend.store(_record("b", "middle", "c"))
        await backend.store(_record("c", "leaf"))
        await backend.store(_record("d", "points at root", "a"))

        near = await backend.find_related("a", max_depth=1)
        far = await backend.find_related("a", max_depth=2)

        assert [i.id for i in near] == ["b", "d"]
        assert [(i.id, i.attributes["distance"]) for i in far] == [("b", 1), ("d", 1), ("c", 2)]
        assert await backend.find_related("missing") == []

    @pytest.mark.asyncio
    async def test_stats(self):
        backend = InMemoryBackend(BackendName.DOCUMENT)
        await backend.store(_record("a", "one", "b"))
        await backend.store(_record("b", "two"))

        stats = await backend.stats()

        assert stats == {
            "backend": "document-backend",
            "type": "memory",
            "total_records": 2,
            "by_category": {"insight": 2},
            "total_links": 1,
        }

    @pytest.mark.asyncio
    async def test_naive_time_range_is_read_as_utc(self):
        backend = InMemoryBackend(BackendName.SEMANTIC_MEMORY)
        await backend.store(_record("a", "OAuth debugging notes"))
        now = datetime.now(timezone.utc).replace(tzinfo=None)

        inside = await backend.search(
            KnowledgeQuery(
                text="oauth",
                filters=SearchFilters(
                    time_range=TimeRange(start=now - timedelta(days=1), end=now + timedelta(days=1))
                ),
            )
        )
        outside = await backend.search(
            KnowledgeQuery(
                text="oauth",
                filters=SearchFilters(
                    time_range=TimeRange(start=now - timedelta(days=3), end=now - timedelta(days=2))
                ),
            )
        )

        assert [i.id for i in inside] == ["a"]
        assert outside == []
