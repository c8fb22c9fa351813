"""
Write orchestrator

prepare: draft -> KnowledgeRecord (classification, domain, confidence, owner).
store:   route -> resolve -> required writes -> best-effort writes -> cache.

Only the required stage (primary, plus the co-primary of a dual-primary
decision) can fail the call. Best-effort failures are logged and reported
in ``StoreResult.backends_failed``.
"""

from __future__ import annotations

import logging
import time

from unified_kms.backends.registry import BackendRegistry
from unified_kms.cache.keys import knowledge_key
from unified_kms.cache.tiered import TieredCache
from unified_kms.classification import ContentClassifier
from unified_kms.exception import KMSException, PrimaryWriteError, SecondaryWriteError
from unified_kms.log import bind_log_context
from unified_kms.models import (
    BackendName,
    CacheTier,
    KnowledgeInput,
    KnowledgeRecord,
    StoreResult,
    StoreTimings,
)
from unified_kms.orchestrator.fanout import gather_settled
from unified_kms.routing import RoutingEngine

logger = logging.getLogger(__name__)

CATEGORY_SOURCE_CALLER = "caller"
CATEGORY_SOURCE_CLASSIFIER = "classifier"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def _reason(error: Exception | None) -> str:
    """Bare message of a failure, without the origin prefix of a wrapped KMSException."""
    if isinstance(error, KMSException) and error.args:
        return str(error.args[0])
    return str(error)


def category_was_inferred(record: KnowledgeRecord) -> bool:
    inferred = record.attributes.get("inferred")
    return isinstance(inferred, dict) and inferred.get("category_source") == CATEGORY_SOURCE_CLASSIFIER


class WriteOrchestrator:
    def __init__(
        self,
        classifier: ContentClassifier,
        router: RoutingEngine,
        backends: BackendRegistry,
        cache: TieredCache,
        *,
        backend_timeout: float | None = 10.0,
    ) -> None:
        self._classifier = classifier
        self._router = router
        self._backends = backends
        self._cache = cache
        self._backend_timeout = backend_timeout

    def prepare(self, draft: KnowledgeInput, caller_id: str | None = None) -> KnowledgeRecord:
        """Fill in everything the caller left out. Raises InvalidContentError on blank content."""
        classification = self._classifier.classify(draft.content, hint=draft.category)
        attributes = self._classifier.build_attributes(classification, draft.attributes)
        attributes["inferred"]["category_source"] = (
            CATEGORY_SOURCE_CALLER if draft.category is not None else CATEGORY_SOURCE_CLASSIFIER
        )
        if not draft.links:
            suggestions = self._classifier.suggest_links(draft.content)
            if suggestions:
                attributes["suggested_links"] = [
                    {"relation_type": s.relation_type, "description": s.description}
                    for s in suggestions
                ]

        questions = self._classifier.elicitation_questions(classification)
        if questions:
            logger.debug(
                f"Follow-up questions would raise confidence: {questions}",
                extra={"event": "store.elicitation", "data": {"questions": questions}},
            )

        return KnowledgeRecord(
            content=draft.content,
            category=classification.category,
            domain=draft.domain or self._classifier.infer_domain(classification),
            owner_id=draft.owner_id or caller_id,
            group_id=draft.group_id,
            attributes=attributes,
            confidence=draft.confidence if draft.confidence is not None else classification.confidence,
            links=list(draft.links),
        )

    async def store(
        self,
        record: KnowledgeRecord,
        *,
        cache_tier: CacheTier | None = None,
    ) -> StoreResult:
        with bind_log_context(
            operation="store",
            request_id=record.id,
            owner_id=record.owner_id,
            group_id=record.group_id,
        ):
            return await self._store(record, cache_tier)

    async def _store(self, record: KnowledgeRecord, cache_tier: CacheTier | None) -> StoreResult:
        started = time.perf_counter()
        decision = self._router.route(record, match_by_category=not category_was_inferred(record))
        if cache_tier is not None:
            decision = decision.model_copy(update={"cache_tier": cache_tier})
        routing_ms = _elapsed_ms(started)

        adapters = {backend: self._backends.get(backend) for backend in decision.backends}

        storage_started = time.perf_counter()
        required = await gather_settled(
            {b.value: (lambda a=adapters[b]: a.store(record)) for b in decision.required_backends},
            timeout=self._backend_timeout,
            stage="primary_write",
        )
        if required.failed:
            failure = required.failed[0]
            logger.error(
                f"Primary write failed on {failure.key}: {failure.error}",
                extra={"event": "store.primary_failed", "backend": failure.key},
            )
            raise PrimaryWriteError(
                f"primary write to {failure.key} failed: {_reason(failure.error)}",
                backend=failure.key,
                stage="primary_write",
                cause=failure.error,
                metadata={
                    "record_id": record.id,
                    "written": [outcome.key for outcome in required.succeeded],
                },
            )

        best_effort = await gather_settled(
            {b.value: (lambda a=adapters[b]: a.store(record)) for b in decision.best_effort_backends},
            timeout=self._backend_timeout,
            stage="secondary_write",
        )
        backends_failed: dict[str, str] = {}
        for failure in best_effort.failed:
            error = SecondaryWriteError(
                _reason(failure.error),
                backend=failure.key,
                stage="secondary_write",
                cause=failure.error,
            )
            backends_failed[failure.key] = str(error)
            logger.warning(
                f"Secondary write failed: {error}",
                extra={"event": "store.secondary_failed", "backend": failure.key},
            )
        storage_ms = _elapsed_ms(storage_started)

        cached = False
        if decision.cache_tier != CacheTier.SKIP:
            cached = await self._cache.set(
                knowledge_key(record),
                record.model_dump(mode="json"),
                tier=decision.cache_tier,
            )

        written = [
            BackendName(outcome.key) for outcome in (*required.succeeded, *best_effort.succeeded)
        ]
        result = StoreResult(
            id=record.id,
            decision=decision,
            cached=cached,
            backends_written=written,
            backends_failed=backends_failed,
            timings=StoreTimings(
                routing_ms=routing_ms,
                storage_ms=storage_ms,
                total_ms=_elapsed_ms(started),
            ),
        )
        logger.info(
            f"Stored {record.id}: primary={decision.primary.value}, "
            f"written={[b.value for b in written]}, tier={decision.cache_tier.value}",
            extra={
                "event": "store.completed",
                "data": {
                    "rule": decision.matched_rule,
                    "failed": list(backends_failed),
                    "duration_ms": result.timings.total_ms,
                },
            },
        )
        return result
