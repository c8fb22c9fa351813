"""
SQLAlchemy document adapter.

Stores each record as a JSON document row with its filterable fields
lifted into columns. Works on any SQLAlchemy dialect; queries are plain
``text()`` statements executed in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from unified_kms.backends.base import BackendAdapter, query_terms, record_to_item
from unified_kms.exception import BackendSearchError
from unified_kms.models import (
    BackendName,
    KnowledgeQuery,
    KnowledgeRecord,
    ResultItem,
    SearchFilters,
)

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "knowledge_document"


def _utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _create_engine(url: str) -> Engine:
    if url.startswith("sqlite") and (url in ("sqlite://", "sqlite:///") or ":memory:" in url):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, pool_pre_ping=True, pool_recycle=3600)


class SQLDocumentBackend(BackendAdapter):
    def __init__(
        self,
        *,
        url: str = "sqlite://",
        table: str = DEFAULT_TABLE,
        engine: Engine | None = None,
    ) -> None:
        super().__init__(BackendName.DOCUMENT)
        if not table.replace("_", "").isalnum():
            raise ValueError(f"invalid table name: {table}")
        self._url = url
        self._table = table
        self._engine = engine
        self._owns_engine = engine is None

    async def _initialize(self) -> None:
        if self._engine is None:
            self._engine = _create_engine(self._url)
        await asyncio.to_thread(self._create_schema)
        logger.info(f"Document backend ready: table={self._table}")

    async def _close(self) -> None:
        if self._engine is not None and self._owns_engine:
            self._engine.dispose()
            self._engine = None
            logger.info("Document backend closed")

    def _create_schema(self) -> None:
        statements = [
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
              record_id VARCHAR(64) PRIMARY KEY,
              content TEXT NOT NULL,
              category VARCHAR(32) NOT NULL,
              domain VARCHAR(32) NOT NULL,
              owner_id VARCHAR(255),
              group_id VARCHAR(255),
              confidence FLOAT NOT NULL,
              created_at VARCHAR(40) NOT NULL,
              document TEXT NOT NULL
            )
            """,
            f"CREATE INDEX IF NOT EXISTS idx_{self._table}_category ON {self._table} (category)",
            f"CREATE INDEX IF NOT EXISTS idx_{self._table}_owner ON {self._table} (owner_id)",
        ]
        with self._engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))

    async def store(self, record: KnowledgeRecord) -> str:
        await self.initialize()
        await asyncio.to_thread(self._upsert, record)
        return record.id

    def _upsert(self, record: KnowledgeRecord) -> None:
        params = {
            "record_id": record.id,
            "content": record.content,
            "category": record.category.value,
            "domain": record.domain.value,
            "owner_id": record.owner_id,
            "group_id": record.group_id,
            "confidence": record.confidence,
            "created_at": _utc_iso(record.created_at),
            "document": record.model_dump_json(),
        }
        with self._engine.begin() as conn:
            conn.execute(
                text(f"DELETE FROM {self._table} WHERE record_id = :record_id"),
                {"record_id": record.id},
            )
            conn.execute(
                text(
                    f"""
                    INSERT INTO {self._table}
                      (record_id, content, category, domain, owner_id, group_id,
                       confidence, created_at, document)
                    VALUES
                      (:record_id, :content, :category, :domain, :owner_id, :group_id,
                       :confidence, :created_at, :document)
                    """
                ),
                params,
            )

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        await self.initialize()
        try:
            rows = await asyncio.to_thread(self._select, query)
        except SQLAlchemyError as exc:
            raise BackendSearchError(
                f"document query failed: {exc}",
                backend=self.name.value,
                stage="search",
                cause=exc,
            ) from exc
        return [
            record_to_item(
                KnowledgeRecord.model_validate_json(row["document"]),
                self.name,
                include_links=query.options.include_links,
            )
            for row in rows
        ]

    def _select(self, query: KnowledgeQuery) -> list[dict[str, Any]]:
        filters, params = _build_filters(query.filters)
        terms = query_terms(query.text)
        if terms:
            term_clauses = []
            for idx, term in enumerate(terms):
                term_clauses.append(f"LOWER(content) LIKE :term_{idx}")
                params[f"term_{idx}"] = f"%{term}%"
            filters.append("(" + " OR ".join(term_clauses) + ")")
        where_clause = " AND ".join(filters) if filters else "1 = 1"
        params["limit"] = query.options.max_results
        statement = text(
            f"""
            SELECT record_id, document
            FROM {self._table}
            WHERE {where_clause}
            ORDER BY confidence DESC, created_at DESC
            LIMIT :limit
            """
        )
        with self._engine.connect() as conn:
            return [dict(row) for row in conn.execute(statement, params).mappings()]

    async def find_by_id(self, record_id: str) -> KnowledgeRecord | None:
        await self.initialize()
        row = await asyncio.to_thread(self._select_one, record_id)
        return KnowledgeRecord.model_validate_json(row["document"]) if row else None

    def _select_one(self, record_id: str) -> dict[str, Any] | None:
        statement = text(f"SELECT document FROM {self._table} WHERE record_id = :record_id")
        with self._engine.connect() as conn:
            row = conn.execute(statement, {"record_id": record_id}).mappings().fetchone()
            return dict(row) if row else None

    async def stats(self) -> dict[str, Any]:
        await self.initialize()
        total, by_category = await asyncio.to_thread(self._counts)
        return {
            "backend": self.name.value,
            "type": "sql",
            "table": self._table,
            "total_records": total,
            "by_category": by_category,
        }

    def _counts(self) -> tuple[int, dict[str, int]]:
        with self._engine.connect() as conn:
            total = conn.execute(text(f"SELECT COUNT(1) AS total FROM {self._table}")).scalar_one()
            rows = conn.execute(
                text(
                    f"SELECT category, COUNT(1) AS count FROM {self._table} "
                    "GROUP BY category ORDER BY count DESC"
                )
            ).mappings()
            return int(total or 0), {row["category"]: int(row["count"]) for row in rows}


def _build_filters(filters: SearchFilters) -> tuple[list[str], dict[str, Any]]:
    clauses: list[str] = []
    params: dict[str, Any] = {}
    if filters.categories:
        names = []
        for idx, category in enumerate(filters.categories):
            names.append(f":category_{idx}")
            params[f"category_{idx}"] = category.value
        clauses.append(f"category IN ({', '.join(names)})")
    if filters.domains:
        names = []
        for idx, domain in enumerate(filters.domains):
            names.append(f":domain_{idx}")
            params[f"domain_{idx}"] = domain.value
        clauses.append(f"domain IN ({', '.join(names)})")
    if filters.owner_id:
        clauses.append("owner_id = :owner_id")
        params["owner_id"] = filters.owner_id
    if filters.group_id:
        clauses.append("group_id = :group_id")
        params["group_id"] = filters.group_id
    if filters.min_confidence is not None:
        clauses.append("confidence >= :min_confidence")
        params["min_confidence"] = filters.min_confidence
    if filters.time_range:
        clauses.append("created_at >= :start AND created_at <= :end")
        params["start"] = _utc_iso(filters.time_range.start)
        params["end"] = _utc_iso(filters.time_range.end)
    return clauses, params
