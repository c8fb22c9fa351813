"""
Read orchestrator

cache -> fan out to every backend -> merge/dedupe -> rank -> truncate -> cache.
A failing backend contributes zero rows and is reported in
``failed_backends``; it never fails the search.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

from unified_kms.backends.registry import BackendRegistry
from unified_kms.cache.keys import search_key
from unified_kms.cache.tiered import TieredCache
from unified_kms.exception import BackendSearchError, KMSException
from unified_kms.log import bind_log_context
from unified_kms.models import (
    BackendName,
    CacheStrategy,
    ContentCategory,
    KnowledgeQuery,
    ResultItem,
    SearchFilters,
    SearchOptions,
    SearchRecommendation,
    SearchResult,
    SearchTimings,
)
from unified_kms.orchestrator.fanout import bounded, gather_settled

logger = logging.getLogger(__name__)

CONFIDENCE_BAND = 0.1
EXACT_MATCH_BONUS = 0.5


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def dedupe_key(item: ResultItem) -> str:
    if item.id:
        return item.id
    return hashlib.md5(item.content.encode("utf-8")).hexdigest()


def deduplicate(items: list[ResultItem]) -> list[ResultItem]:
    """Keep one row per logical id; the highest confidence wins, first seen on ties."""
    unique: dict[str, ResultItem] = {}
    for item in items:
        key = dedupe_key(item)
        current = unique.get(key)
        if current is None or item.confidence > current.confidence:
            unique[key] = item
    return list(unique.values())


def relevance(content: str, query: str) -> float:
    """Share of query terms found in the content, with a bonus for the whole phrase."""
    if not content or not query.strip():
        return 0.0
    content_lower = content.lower()
    query_lower = query.lower().strip()
    terms = query_lower.split()
    exact = query_lower in content_lower
    score = 0.0
    for term in terms:
        if term in content_lower:
            score += 1 + (EXACT_MATCH_BONUS if exact else 0.0)
    return score / len(terms)


def rank(items: list[ResultItem], query: str, band: float = CONFIDENCE_BAND) -> list[ResultItem]:
    """
    Order by confidence descending.

    Rows whose confidence lies within ``band`` of the leading row of their
    group are ordered by relevance instead, then by confidence.
    """
    ordered = sorted(items, key=lambda item: item.confidence, reverse=True)
    ranked: list[ResultItem] = []
    group: list[ResultItem] = []
    for item in ordered:
        if group and group[0].confidence - item.confidence > band:
            ranked.extend(_order_group(group, query))
            group = []
        group.append(item)
    ranked.extend(_order_group(group, query))
    return ranked


def _order_group(group: list[ResultItem], query: str) -> list[ResultItem]:
    return sorted(
        group,
        key=lambda item: (relevance(item.content, query), item.confidence),
        reverse=True,
    )


class ReadOrchestrator:
    def __init__(
        self,
        backends: BackendRegistry,
        cache: TieredCache,
        *,
        backend_timeout: float | None = 10.0,
        aggressive_ttl_seconds: int = 3600,
        conservative_ttl_seconds: int = 1800,
    ) -> None:
        self._backends = backends
        self._cache = cache
        self._backend_timeout = backend_timeout
        self._strategy_ttls = {
            CacheStrategy.AGGRESSIVE: aggressive_ttl_seconds,
            CacheStrategy.CONSERVATIVE: conservative_ttl_seconds,
            CacheStrategy.REALTIME: 0,
        }

    def ttl_for_strategy(self, strategy: CacheStrategy) -> int:
        return self._strategy_ttls[strategy]

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResult:
        filters = filters or SearchFilters()
        options = options or SearchOptions()
        with bind_log_context(
            operation="search", owner_id=filters.owner_id, group_id=filters.group_id
        ):
            return await self._search(query, filters, options)

    async def _search(
        self, text: str, filters: SearchFilters, options: SearchOptions
    ) -> SearchResult:
        started = time.perf_counter()
        key = search_key(text, filters, options)
        realtime = options.cache_strategy == CacheStrategy.REALTIME

        if not realtime:
            cached = await self._cache.get(key)
            if cached is not None:
                cache_check_ms = _elapsed_ms(started)
                logger.debug(f"Search cache hit: {key}", extra={"event": "search.cache_hit"})
                result = SearchResult.model_validate(cached)
                return result.model_copy(
                    update={
                        "from_cache": True,
                        "timings": SearchTimings(
                            cache_check_ms=cache_check_ms, total_ms=_elapsed_ms(started)
                        ),
                    }
                )
        cache_check_ms = _elapsed_ms(started)

        query = KnowledgeQuery(text=text, filters=filters, options=options)
        search_started = time.perf_counter()
        settled = await gather_settled(
            {a.name.value: (lambda a=a: a.search(query)) for a in self._backends.adapters()},
            timeout=self._backend_timeout,
            stage="search",
        )
        search_ms = _elapsed_ms(search_started)

        per_backend_counts: dict[str, int] = {}
        failed_backends: dict[str, str] = {}
        rows: list[ResultItem] = []
        for outcome in settled.succeeded:
            items = [
                item if item.source_backend else item.model_copy(
                    update={"source_backend": BackendName(outcome.key)}
                )
                for item in outcome.value or []
            ]
            per_backend_counts[outcome.key] = len(items)
            rows.extend(items)
        for outcome in settled.failed:
            per_backend_counts[outcome.key] = 0
            failed_backends[outcome.key] = str(outcome.error)
            logger.warning(
                f"Backend search failed: {outcome.error}",
                extra={"event": "search.backend_failed", "backend": outcome.key},
            )

        merge_started = time.perf_counter()
        results = rank(deduplicate(rows), text)[: options.max_results]
        merge_ms = _elapsed_ms(merge_started)

        result = SearchResult(
            query=text,
            results=results,
            total=len(rows),
            from_cache=False,
            per_backend_counts=per_backend_counts,
            failed_backends=failed_backends,
            timings=SearchTimings(
                cache_check_ms=cache_check_ms,
                search_ms=search_ms,
                merge_ms=merge_ms,
                total_ms=_elapsed_ms(started),
            ),
        )

        ttl = self.ttl_for_strategy(options.cache_strategy)
        if ttl > 0:
            await self._cache.set(key, result.model_dump(mode="json"), ttl=ttl)

        logger.info(
            f"Search '{text}': {len(results)} results from {len(settled.succeeded)} backends",
            extra={
                "event": "search.completed",
                "data": {
                    "total": result.total,
                    "failed": list(failed_backends),
                    "duration_ms": result.timings.total_ms,
                },
            },
        )
        return result

    async def search_backend(
        self,
        name: BackendName | str,
        query: str,
        filters: SearchFilters | None = None,
        options: SearchOptions | None = None,
    ) -> list[ResultItem]:
        """Query one backend directly; unknown names and failures propagate."""
        adapter = self._backends.get(name)
        knowledge_query = KnowledgeQuery(
            text=query,
            filters=filters or SearchFilters(),
            options=options or SearchOptions(),
        )
        with bind_log_context(operation="search_backend", backend=adapter.name.value):
            try:
                return await bounded(
                    adapter.search(knowledge_query),
                    self._backend_timeout,
                    backend=adapter.name.value,
                    stage="search",
                )
            except KMSException:
                raise
            except Exception as exc:
                raise BackendSearchError(
                    f"search failed: {exc}",
                    backend=adapter.name.value,
                    stage="search",
                    cause=exc,
                ) from exc

    def recommend(self, query: str) -> SearchRecommendation:
        """Suggest backends and filters from the wording of a query."""
        lowered = query.lower()
        if any(word in lowered for word in ("memory", "client", "behavior")):
            return SearchRecommendation(
                backends=[BackendName.SEMANTIC_MEMORY, BackendName.DOCUMENT],
                suggested_filters=_category_filter(ContentCategory.MEMORY),
                rationale="Memory and client queries are best served by semantic memory and documents",
            )
        if any(word in lowered for word in ("technique", "relationship", "effective")):
            return SearchRecommendation(
                backends=[BackendName.GRAPH, BackendName.SEMANTIC_MEMORY],
                suggested_filters=_category_filter(
                    ContentCategory.INSIGHT, ContentCategory.RELATIONSHIP
                ),
                rationale="Technique and relationship queries benefit from graph traversal",
            )
        if any(word in lowered for word in ("config", "session", "setting")):
            return SearchRecommendation(
                backends=[BackendName.DOCUMENT, BackendName.SEMANTIC_MEMORY],
                suggested_filters=_category_filter(ContentCategory.FACT, ContentCategory.PROCEDURE),
                rationale="Configuration and session data lives in structured documents",
            )
        return SearchRecommendation(
            backends=list(BackendName),
            rationale="Search every backend for comprehensive results",
        )


def _category_filter(*categories: ContentCategory) -> dict[str, Any]:
    return {"categories": [category.value for category in categories]}
