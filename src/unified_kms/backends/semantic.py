"""
Chroma semantic-memory adapter.

Records are embedded by the collection's embedding function and queried
by text similarity. Chroma's client is synchronous, so calls run in a
worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from unified_kms.backends.base import BackendAdapter, link_dicts
from unified_kms.exception import BackendSearchError, KMSException
from unified_kms.models import (
    BackendName,
    KnowledgeQuery,
    KnowledgeRecord,
    ResultItem,
    SearchFilters,
)

logger = logging.getLogger(__name__)


class ChromaSemanticBackend(BackendAdapter):
    def __init__(
        self,
        *,
        path: str | None = None,
        host: str | None = None,
        port: int = 8000,
        collection: str = "knowledge",
        namespace: str = "kms",
    ) -> None:
        super().__init__(BackendName.SEMANTIC_MEMORY)
        self._path = path
        self._host = host
        self._port = port
        self._collection_name = f"{namespace}_{collection}"
        self._client = None
        self._collection = None

    async def _initialize(self) -> None:
        try:
            import chromadb
        except ImportError as exc:
            raise ImportError(
                "The Chroma semantic backend requires chromadb:\n"
                "  pip install unified-kms[semantic]"
            ) from exc

        if self._host:
            self._client = chromadb.HttpClient(host=self._host, port=self._port)
            logger.info(f"Chroma semantic backend (remote): {self._host}:{self._port}")
        else:
            self._client = chromadb.PersistentClient(path=self._path or "./data/chroma")
            logger.info(f"Chroma semantic backend (local): {self._path}")
        self._collection = await asyncio.to_thread(
            self._client.get_or_create_collection,
            name=self._collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    async def _close(self) -> None:
        self._client = None
        self._collection = None
        logger.info("Chroma semantic backend closed")

    async def store(self, record: KnowledgeRecord) -> str:
        await self.initialize()
        await asyncio.to_thread(
            self._collection.upsert,
            ids=[record.id],
            documents=[record.content],
            metadatas=[_to_metadata(record)],
        )
        return record.id

    async def search(self, query: KnowledgeQuery) -> list[ResultItem]:
        await self.initialize()
        try:
            result = await asyncio.to_thread(
                self._collection.query,
                query_texts=[query.text],
                n_results=query.options.max_results,
                where=_to_where(query.filters),
                include=["metadatas", "documents", "distances"],
            )
        except KMSException:
            raise
        except Exception as exc:
            raise BackendSearchError(
                f"Chroma query failed: {exc}",
                backend=self.name.value,
                stage="search",
                cause=exc,
            ) from exc
        return _to_items(result, query.options.include_links)

    async def stats(self) -> dict[str, Any]:
        await self.initialize()
        count = await asyncio.to_thread(self._collection.count)
        sample = await asyncio.to_thread(self._collection.get, limit=1000, include=["metadatas"])
        categories = Counter(
            (metadata or {}).get("category", "unknown") for metadata in sample.get("metadatas") or []
        )
        return {
            "backend": self.name.value,
            "type": "chroma",
            "collection": self._collection_name,
            "total_records": count,
            "by_category": dict(categories),
        }


def _to_metadata(record: KnowledgeRecord) -> dict[str, Any]:
    # Chroma metadata values must be scalars and never None.
    return {
        "category": record.category.value,
        "domain": record.domain.value,
        "owner_id": record.owner_id or "",
        "group_id": record.group_id or "",
        "confidence": record.confidence,
        "created_at": record.created_at.isoformat(),
        "created_ts": record.created_at.timestamp(),
        "attributes": json.dumps(record.attributes, ensure_ascii=False, default=str),
        "links": json.dumps(link_dicts(record), ensure_ascii=False),
    }


def _to_where(filters: SearchFilters) -> dict[str, Any] | None:
    clauses: list[dict[str, Any]] = []
    if filters.categories:
        clauses.append({"category": {"$in": [c.value for c in filters.categories]}})
    if filters.domains:
        clauses.append({"domain": {"$in": [d.value for d in filters.domains]}})
    if filters.owner_id:
        clauses.append({"owner_id": filters.owner_id})
    if filters.group_id:
        clauses.append({"group_id": filters.group_id})
    if filters.min_confidence is not None:
        clauses.append({"confidence": {"$gte": filters.min_confidence}})
    if filters.time_range:
        clauses.append({"created_ts": {"$gte": filters.time_range.start.timestamp()}})
        clauses.append({"created_ts": {"$lte": filters.time_range.end.timestamp()}})
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _to_items(result: dict[str, Any], include_links: bool) -> list[ResultItem]:
    ids = (result.get("ids") or [[]])[0]
    metadatas = (result.get("metadatas") or [[]])[0] or []
    documents = (result.get("documents") or [[]])[0] or []
    distances = (result.get("distances") or [[]])[0] or []

    items: list[ResultItem] = []
    for idx, record_id in enumerate(ids):
        metadata = dict(metadatas[idx] or {}) if idx < len(metadatas) else {}
        distance = distances[idx] if idx < len(distances) else None
        similarity = 1.0 - float(distance) if distance is not None else None
        attributes = _loads(metadata.get("attributes"), {})
        if similarity is not None:
            attributes["similarity"] = round(similarity, 4)
        items.append(
            ResultItem(
                id=record_id,
                content=documents[idx] if idx < len(documents) else "",
                confidence=similarity if similarity is not None else metadata.get("confidence"),
                attributes=attributes,
                timestamp=_parse_timestamp(metadata.get("created_at")),
                category=metadata.get("category"),
                domain=metadata.get("domain"),
                owner_id=metadata.get("owner_id") or None,
                source_backend=BackendName.SEMANTIC_MEMORY,
                links=_loads(metadata.get("links"), []) if include_links else [],
            )
        )
    return items


def _loads(raw: Any, default: Any) -> Any:
    if not isinstance(raw, str):
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str):
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
