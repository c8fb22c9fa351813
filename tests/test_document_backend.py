"""
SQL document backend tests (in-memory sqlite)

Module under test: unified_kms.backends.document
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from unified_kms.backends.document import SQLDocumentBackend
from unified_kms.models import (
    ContentCategory,
    KnowledgeDomain,
    KnowledgeQuery,
    KnowledgeRecord,
    RecordLink,
    SearchFilters,
    SearchOptions,
    TimeRange,
)


def _record(content: str, **fields) -> KnowledgeRecord:
    fields.setdefault("category", ContentCategory.FACT)
    return KnowledgeRecord(content=content, **fields)


def _query(text: str, **filters) -> KnowledgeQuery:
    return KnowledgeQuery(text=text, filters=SearchFilters(**filters), options=SearchOptions())


@pytest_asyncio.fixture
async def backend():
    adapter = SQLDocumentBackend(url="sqlite://")
    await adapter.initialize()
    yield adapter
    await adapter.close()


class TestSQLDocumentBackend:
    """Storage, lookup and filtered search."""

    @pytest.mark.asyncio
    async def test_find_by_id_roundtrip(self, backend):
        record = _record(
            "Session configuration: duration 60min",
            domain=KnowledgeDomain.OPERATIONAL,
            owner_id="coach-1",
            attributes={"tags": ["session"]},
            links=[RecordLink(target_id="other", relation_type="related_to", strength=0.7)],
        )

        await backend.store(record)
        loaded = await backend.find_by_id(record.id)

        assert loaded == record
        assert await backend.find_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_term_search_orders_by_confidence(self, backend):
        await backend.store(_record("Session length is 60 minutes", confidence=0.6))
        await backend.store(_record("Weekly session cadence", confidence=0.9))
        await backend.store(_record("Unrelated billing note", confidence=0.99))

        items = await backend.search(_query("session"))

        assert [item.content for item in items] == [
            "Weekly session cadence",
            "Session length is 60 minutes",
        ]
        assert all(item.source_backend == backend.name for item in items)

    @pytest.mark.asyncio
    async def test_filters(self, backend):
        await backend.store(_record("session fact", owner_id="a", confidence=0.4))
        await backend.store(
            _record("session steps", category=ContentCategory.PROCEDURE, owner_id="b", confidence=0.8)
        )

        by_category = await backend.search(_query("session", categories=[ContentCategory.PROCEDURE]))
        by_owner = await backend.search(_query("session", owner_id="a"))
        by_confidence = await backend.search(_query("session", min_confidence=0.5))

        assert [i.content for i in by_category] == ["session steps"]
        assert [i.content for i in by_owner] == ["session fact"]
        assert [i.content for i in by_confidence] == ["session steps"]

    @pytest.mark.asyncio
    async def test_time_range(self, backend):
        old = datetime(2026, 1, 1, tzinfo=timezone.utc)
        new = datetime(2026, 6, 1, tzinfo=timezone.utc)
        await backend.store(_record("session january", created_at=old))
        await backend.store(_record("session june", created_at=new))

        items = await backend.search(
            _query(
                "session",
                time_range=TimeRange(
                    start=datetime(2026, 5, 1, tzinfo=timezone.utc),
                    end=datetime(2026, 7, 1, tzinfo=timezone.utc),
                ),
            )
        )

        assert [i.content for i in items] == ["session june"]

    @pytest.mark.asyncio
    async def test_store_replaces_existing_record(self, backend):
        first = _record("draft session note")
        await backend.store(first)
        await backend.store(first.model_copy(update={"content": "final session note"}))

        items = await backend.search(_query("session"))

        assert [i.content for i in items] == ["final session note"]

    @pytest.mark.asyncio
    async def test_stats(self, backend):
        await backend.store(_record("one"))
        await backend.store(_record("two"))
        await backend.store(_record("three", category=ContentCategory.PROCEDURE))

        stats = await backend.stats()

        assert stats["type"] == "sql"
        assert stats["total_records"] == 3
        assert stats["by_category"] == {"fact": 2, "procedure": 1}
