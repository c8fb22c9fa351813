"""
Knowledge service facade.

Wires the classifier, routing engine, backends, cache and orchestrators
from a KMSConfig. Use ``create_knowledge_service`` so connections are
opened and closed around the block:

```python
from unified_kms import KnowledgeInput, create_knowledge_service

async with create_knowledge_service() as kms:
    stored = await kms.store(KnowledgeInput(content="Client prefers morning sessions"))
    found = await kms.search("morning sessions")
```
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from unified_kms.backends.registry import BackendRegistry, create_backends
from unified_kms.cache.shared_tier import RedisSharedCache, SharedCache
from unified_kms.cache.tiered import TieredCache
from unified_kms.classification import ContentClassifier
from unified_kms.config import KMSConfig, get_config
from unified_kms.models import (
    BackendName,
    CacheTier,
    KnowledgeInput,
    ResultItem,
    RoutingDecision,
    SearchFilters,
    SearchOptions,
    SearchRecommendation,
    SearchResult,
    StoreResult,
)
from unified_kms.orchestrator.fanout import gather_settled
from unified_kms.orchestrator.reader import ReadOrchestrator
from unified_kms.orchestrator.writer import WriteOrchestrator, category_was_inferred
from unified_kms.routing import RoutingEngine

logger = logging.getLogger(__name__)


class KnowledgeService:
    def __init__(
        self,
        config: KMSConfig | None = None,
        *,
        backends: BackendRegistry | None = None,
        cache: TieredCache | None = None,
        shared_cache: SharedCache | None = None,
        classifier: ContentClassifier | None = None,
        router: RoutingEngine | None = None,
    ) -> None:
        self.config = config or get_config()
        self.classifier = classifier or ContentClassifier()
        self.router = router or RoutingEngine(
            default=self.config.routing.to_default_decision(),
            hot_owner_ids=self.config.routing.hot_owner_ids,
        )
        self.backends = backends or create_backends(self.config.backends)
        if cache is None:
            if shared_cache is None and self.config.cache.redis_url:
                shared_cache = RedisSharedCache(
                    redis_url=self.config.cache.redis_url,
                    key_prefix=self.config.cache.key_prefix,
                )
            cache = TieredCache(self.config.cache, shared=shared_cache)
        self.cache = cache

        timeout = self.config.orchestrator.backend_timeout_seconds
        self.writer = WriteOrchestrator(
            self.classifier,
            self.router,
            self.backends,
            self.cache,
            backend_timeout=timeout,
        )
        self.reader = ReadOrchestrator(
            self.backends,
            self.cache,
            backend_timeout=timeout,
            aggressive_ttl_seconds=self.config.orchestrator.aggressive_ttl_seconds,
            conservative_ttl_seconds=self.config.orchestrator.conservative_ttl_seconds,
        )
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.backends.initialize_all()
        self.cache.start()
        self._initialized = True
        logger.info(
            f"Knowledge service ready: backends={[b.value for b in self.backends.names]}",
            extra={"event": "service.initialized"},
        )

    async def close(self) -> None:
        await self.cache.close()
        await self.backends.close_all()
        self._initialized = False
        logger.info("Knowledge service closed", extra={"event": "service.closed"})

    async def store(
        self,
        draft: KnowledgeInput | str,
        *,
        caller_id: str | None = None,
        cache_tier: CacheTier | None = None,
    ) -> StoreResult:
        record = self.writer.prepare(_as_input(draft), caller_id=caller_id)
        return await self.writer.store(record, cache_tier=cache_tier)

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResult:
        return await self.reader.search(query, filters, options or self._default_options())

    def preview_routing(
        self,
        draft: KnowledgeInput | str,
        *,
        caller_id: str | None = None,
    ) -> RoutingDecision:
        """Classify and route without writing anything."""
        record = self.writer.prepare(_as_input(draft), caller_id=caller_id)
        return self.router.route(
            record, match_by_category=not category_was_inferred(record), count=False
        )

    async def invalidate_cache(self, pattern: str) -> int:
        return await self.cache.invalidate(pattern)

    def routing_stats(self) -> dict[str, Any]:
        return self.router.stats()

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    async def backend_stats(self) -> dict[str, Any]:
        settled = await gather_settled(
            {a.name.value: (lambda a=a: a.stats()) for a in self.backends.adapters()},
            timeout=self.config.orchestrator.backend_timeout_seconds,
            stage="stats",
        )
        stats: dict[str, Any] = {outcome.key: outcome.value for outcome in settled.succeeded}
        for outcome in settled.failed:
            stats[outcome.key] = {"available": False, "error": str(outcome.error)}
        return stats

    async def search_backend(
        self,
        name: BackendName | str,
        query: str,
        filters: SearchFilters | None = None,
        options: SearchOptions | None = None,
    ) -> list[ResultItem]:
        return await self.reader.search_backend(
            name, query, filters, options or self._default_options()
        )

    def recommend_search(self, query: str) -> SearchRecommendation:
        return self.reader.recommend(query)

    def _default_options(self) -> SearchOptions:
        return SearchOptions(max_results=self.config.orchestrator.default_max_results)


def _as_input(draft: KnowledgeInput | str) -> KnowledgeInput:
    if isinstance(draft, KnowledgeInput):
        return draft
    return KnowledgeInput(content=draft)


@asynccontextmanager
async def create_knowledge_service(
    config: KMSConfig | None = None,
    **kwargs: Any,
) -> AsyncGenerator[KnowledgeService, None]:
    """Initialize a service for the duration of the block, then close it."""
    service = KnowledgeService(config, **kwargs)
    await service.initialize()
    try:
        yield service
    finally:
        await service.close()
