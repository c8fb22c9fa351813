"""
Neo4j graph adapter.

Each record is a ``:Knowledge`` node; record links become typed, weighted
relationships between nodes. Relationship types cannot be parameterized in
Cypher, so they are sanitized to ``[A-Z0-9_]`` before interpolation.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, cast

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import Neo4jError
from neo4j.time import DateTime as Neo4jDateTime

from unified_kms.backends.base import BackendAdapter, query_terms
from unified_kms.exception import BackendSearchError
from unified_kms.models import (
    BackendName,
    KnowledgeQuery,
    KnowledgeRecord,
    ResultItem,
    SearchFilters,
)

logger = logging.getLogger(__name__)

_UNSAFE_REL_CHARS = re.compile(r"[^A-Z0-9_]")

_SCHEMA_STATEMENTS = (
    "CREATE CONSTRAINT knowledge_id_unique IF NOT EXISTS "
    "FOR (k:Knowledge) REQUIRE k.id IS UNIQUE",
    "CREATE INDEX knowledge_category_index IF NOT EXISTS FOR (k:Knowledge) ON (k.category)",
    "CREATE INDEX knowledge_confidence_index IF NOT EXISTS FOR (k:Knowledge) ON (k.confidence)",
)


def sanitize_relation_type(relation_type: str) -> str:
    safe = _UNSAFE_REL_CHARS.sub("_", relation_type.upper())
    return safe or "RELATED_TO"


def convert_neo4j_types(value: Any) -> Any:
    """Recursively convert Neo4j temporal values to plain Python types."""
    if isinstance(value, Neo4jDateTime):
        return value.to_native()
    if isinstance(value, dict):
        return {k: convert_neo4j_types(v) for k, v in value.items()}
    if isinstance(value, list):
        return [convert_neo4j_types(item) for item in value]
    return value


async def arun_cypher(
    session: Any,
    query: str,
    parameters: Mapping[str, Any] | None = None,
) -> Any:
    return await session.run(cast(Any, query), dict(parameters or {}))


class Neo4jGraphBackend(BackendAdapter):
    def __init__(
        self,
        *,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "",
        database: str | None = None,
        driver: AsyncDriver | None = None,
    ) -> None:
        super().__init__(BackendName.GRAPH)
        self._uri = uri
        self._auth = (username, password)
        self._database = database
        self._driver = driver
        self._owns_driver = driver is None

    async def _initialize(self) -> None:
        if self._driver is None:
            logger.info(f"Connecting Neo4j graph backend: {self._uri}")
            self._driver = AsyncGraphDatabase.driver(
                self._uri,
                auth=self._auth,
                max_connection_pool_size=50,
                connection_acquisition_timeout=60,
            )
        await self._driver.verify_connectivity()
        async with self._session() as session:
            for statement in _SCHEMA_STATEMENTS:
                await arun_cypher(session, statement)
        logger.info("Neo4j graph backend ready")

    async def _close(self) -> None:
        if self._driver is not None and self._owns_driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j graph backend closed")

    def _session(self):
        return self._driver.session(database=self._database)

    async def store(self, record: KnowledgeRecord) -> str:
        await self.initialize()
        async with self._session() as session:
            await arun_cypher(
                session,
                """
                MERGE (k:Knowledge {id: $id})
                SET k.content = $content,
                    k.category = $category,
                    k.domain = $domain,
                    k.owner_id = $owner_id,
                    k.group_id = $group_id,
                    k.confidence = $confidence,
                    k.created_at = datetime($created_at),
                    k.attributes = $attributes
                """,
                {
                    "id": record.id,
                    "content": record.content,
                    "category": record.category.value,
                    "domain": record.domain.value,
                    "owner_id": record.owner_id,
                    "group_id": record.group_id,
                    "confidence": record.confidence,
                    "created_at": record.created_at.isoformat(),
                    "attributes": json.dumps(record.attributes, ensure_ascii=False, default=str),
                },
            )
            for link in record.links:
                await self.create_relationship(
                    record.id, link.target_id, link.relation_type, link.strength, session=session
                )
        return record.id

    async def create_relationship(
        self,
        source_id: str,
        target_id: str,
        relation_type: str,
        strength: float = 0.5,
        *,
        session: Any = None,
    ) -> None:
        rel_type = sanitize_relation_type(relation_type)
        cypher = f"""
            MATCH (source:Knowledge {{id: $source_id}})
            MERGE (target:Knowledge {{id: $target_id}})
            MERGE (source)-[r:{rel_type}]->(target)
            SET r.strength = $strength, r.created_at = datetime()
        """
        params = {"source_id": source_id, "target_id": target_id, "strength": strength}
        if session is not None:
            await arun_cypher(session, cypher, params)
            return
        await self.initialize()
        async with self._session() as own_session:
            await arun_cypher(own_session, cypher, params)

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        await self.initialize()
        where, params = _build_where(query.filters)
        terms = _term_clause(query_terms(query.text), params)
        if terms:
            where.insert(0, terms)
        where_clause = " AND ".join(where) if where else "true"
        params["limit"] = query.options.max_results

        if query.options.include_links:
            tail = """
                OPTIONAL MATCH (k)-[r]->(related:Knowledge)
                WITH k, collect(CASE WHEN related IS NULL THEN NULL ELSE {
                    target_id: related.id, relation_type: type(r), strength: r.strength
                } END) AS links
                RETURN k, links
            """
        else:
            tail = "RETURN k, [] AS links"

        cypher = f"""
            MATCH (k:Knowledge)
            WHERE {where_clause}
            {tail}
            ORDER BY k.confidence DESC, k.created_at DESC
            LIMIT $limit
        """
        try:
            async with self._session() as session:
                result = await arun_cypher(session, cypher, params)
                rows = await result.data()
        except Neo4jError as exc:
            raise BackendSearchError(
                f"Neo4j search failed: {exc}",
                backend=self.name.value,
                stage="search",
                cause=exc,
            ) from exc
        return [_to_item(convert_neo4j_types(row["k"]), row.get("links") or []) for row in rows]

    async def find_related(
        self,
        record_id: str,
        max_depth: int = 2,
        relation_types: list[str] | None = None,
        limit: int = 20,
    ) -> list[ResultItem]:
        await self.initialize()
        depth = max(1, int(max_depth))
        rel_filter = ""
        if relation_types:
            rel_filter = ":" + "|".join(sanitize_relation_type(t) for t in relation_types)
        cypher = f"""
            MATCH (start:Knowledge {{id: $id}})
            MATCH path = (start)-[{rel_filter}*1..{depth}]-(related:Knowledge)
            WHERE related.id <> $id
            WITH related, min(length(path)) AS distance
            RETURN related, distance
            ORDER BY distance, related.confidence DESC
            LIMIT $limit
        """
        async with self._session() as session:
            result = await arun_cypher(session, cypher, {"id": record_id, "limit": limit})
            rows = await result.data()
        items = []
        for row in rows:
            item = _to_item(convert_neo4j_types(row["related"]), [])
            item.attributes["distance"] = row["distance"]
            items.append(item)
        return items

    async def stats(self) -> dict[str, Any]:
        await self.initialize()
        async with self._session() as session:
            nodes = await (await arun_cypher(
                session, "MATCH (n:Knowledge) RETURN count(n) AS total"
            )).single()
            relationships = await (await arun_cypher(
                session, "MATCH (:Knowledge)-[r]->() RETURN count(r) AS total"
            )).single()
            by_category = await (await arun_cypher(
                session,
                "MATCH (n:Knowledge) RETURN n.category AS category, count(n) AS count "
                "ORDER BY count DESC",
            )).data()
            by_type = await (await arun_cypher(
                session,
                "MATCH (:Knowledge)-[r]->() RETURN type(r) AS rel_type, count(r) AS count "
                "ORDER BY count DESC",
            )).data()
        return {
            "backend": self.name.value,
            "type": "neo4j",
            "total_records": nodes["total"] if nodes else 0,
            "total_relationships": relationships["total"] if relationships else 0,
            "by_category": {row["category"]: row["count"] for row in by_category},
            "by_relation_type": {row["rel_type"]: row["count"] for row in by_type},
        }


def _term_clause(terms: list[str], params: dict[str, Any]) -> str | None:
    """Any-term match, the same semantics as the document and in-memory adapters."""
    if not terms:
        return None
    clauses = []
    for idx, term in enumerate(terms):
        clauses.append(f"toLower(k.content) CONTAINS $term_{idx}")
        params[f"term_{idx}"] = term
    return "(" + " OR ".join(clauses) + ")"


def _build_where(filters: SearchFilters) -> tuple[list[str], dict[str, Any]]:
    where: list[str] = []
    params: dict[str, Any] = {}
    if filters.categories:
        where.append("k.category IN $categories")
        params["categories"] = [c.value for c in filters.categories]
    if filters.domains:
        where.append("k.domain IN $domains")
        params["domains"] = [d.value for d in filters.domains]
    if filters.owner_id:
        where.append("k.owner_id = $owner_id")
        params["owner_id"] = filters.owner_id
    if filters.group_id:
        where.append("k.group_id = $group_id")
        params["group_id"] = filters.group_id
    if filters.min_confidence is not None:
        where.append("k.confidence >= $min_confidence")
        params["min_confidence"] = filters.min_confidence
    if filters.time_range:
        where.append("k.created_at >= datetime($start) AND k.created_at <= datetime($end)")
        params["start"] = filters.time_range.start.isoformat()
        params["end"] = filters.time_range.end.isoformat()
    return where, params


def _to_item(node: dict[str, Any], links: list[dict[str, Any]]) -> ResultItem:
    created_at = node.get("created_at")
    try:
        attributes = json.loads(node.get("attributes") or "{}")
    except (json.JSONDecodeError, TypeError):
        attributes = {}
    return ResultItem(
        id=node.get("id"),
        content=node.get("content") or "",
        confidence=node.get("confidence"),
        attributes=attributes,
        timestamp=created_at if isinstance(created_at, datetime) else None,
        category=node.get("category"),
        domain=node.get("domain"),
        owner_id=node.get("owner_id"),
        source_backend=BackendName.GRAPH,
        links=[link for link in links if link],
    )
