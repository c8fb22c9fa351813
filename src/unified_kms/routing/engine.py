"""
Routing engine

Turns a record into a RoutingDecision: authoritative backend, cross-index
backends and cache tier. Synchronous and side-effect free apart from the
decision counters reported by ``stats()``.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Iterable
from typing import Any

from unified_kms.exception import RoutingConfigurationError
from unified_kms.models import (
    BackendName,
    CacheTier,
    ContentCategory,
    KnowledgeDomain,
    KnowledgeRecord,
    RoutingDecision,
)
from unified_kms.routing.rules import (
    RELATION_PATTERN,
    DefaultDecision,
    RoutingRule,
    default_rules,
    validate_default,
    validate_rule,
)

logger = logging.getLogger(__name__)

WARM_CONFIDENCE_THRESHOLD = 0.8


def cross_link_secondaries(record: KnowledgeRecord, primary: BackendName) -> list[BackendName]:
    """Secondary backends for a primary, keyed by the cross-linking table."""
    if primary == BackendName.SEMANTIC_MEMORY:
        secondary = [BackendName.DOCUMENT]
        if record.links:
            secondary.append(BackendName.GRAPH)
        return secondary
    if primary == BackendName.GRAPH:
        secondary = [BackendName.SEMANTIC_MEMORY]
        if (
            record.domain == KnowledgeDomain.TECHNICAL
            or record.category == ContentCategory.PROCEDURE
        ):
            secondary.append(BackendName.DOCUMENT)
        return secondary
    secondary = [BackendName.SEMANTIC_MEMORY]
    if RELATION_PATTERN.search(record.content):
        secondary.append(BackendName.GRAPH)
    return secondary


def select_cache_tier(
    record: KnowledgeRecord,
    hot_owner_ids: frozenset[str] = frozenset(),
) -> CacheTier:
    """First match wins; backend choice plays no part."""
    if record.domain == KnowledgeDomain.PERSONAL:
        return CacheTier.HOT
    if record.owner_id is not None and record.owner_id in hot_owner_ids:
        return CacheTier.HOT
    if record.category in (ContentCategory.MEMORY, ContentCategory.INSIGHT):
        return CacheTier.WARM
    if record.confidence > WARM_CONFIDENCE_THRESHOLD:
        return CacheTier.WARM
    return CacheTier.COLD


class RoutingEngine:
    """Ordered rule table plus a fixed default decision."""

    def __init__(
        self,
        rules: Iterable[RoutingRule] | None = None,
        default: DefaultDecision | None = None,
        hot_owner_ids: Iterable[str] = (),
    ) -> None:
        if default is None:
            default = DefaultDecision()
        validate_default(default)
        self._default = default
        self._rules: list[RoutingRule] = []
        for rule in default_rules() if rules is None else rules:
            validate_rule(rule)
            self._rules.append(rule)
        self._hot_owner_ids = frozenset(hot_owner_ids)
        self._lock = threading.Lock()
        self._counters: dict[str, Counter[str]] = {
            "primary": Counter(),
            "cache_tier": Counter(),
            "rule": Counter(),
        }
        self._fallbacks = 0
        self._decisions = 0

    @property
    def rules(self) -> list[RoutingRule]:
        return list(self._rules)

    def add_rule(self, rule: RoutingRule, *, index: int | None = None) -> None:
        """Register a rule; appended at lowest priority unless ``index`` is given."""
        validate_rule(rule)
        if any(existing.name == rule.name for existing in self._rules):
            raise RoutingConfigurationError(
                f"routing rule '{rule.name}' is already registered", stage="routing"
            )
        if index is None:
            self._rules.append(rule)
        else:
            self._rules.insert(index, rule)
        logger.info(
            f"Routing rule registered: {rule.name} -> {rule.primary.value}",
            extra={"event": "routing.rule_added", "data": {"rule": rule.name}},
        )

    def remove_rule(self, name_or_pattern: str) -> bool:
        """Drop the first rule whose name or pattern source equals the argument."""
        for position, rule in enumerate(self._rules):
            if rule.name == name_or_pattern or rule.pattern.pattern == name_or_pattern:
                del self._rules[position]
                logger.info(
                    f"Routing rule removed: {rule.name}",
                    extra={"event": "routing.rule_removed", "data": {"rule": rule.name}},
                )
                return True
        return False

    def route(
        self,
        record: KnowledgeRecord,
        *,
        match_by_category: bool = True,
        count: bool = True,
    ) -> RoutingDecision:
        """Decide backends and cache tier. ``count=False`` leaves the decision counters untouched."""
        rule = self._match(record, match_by_category)
        cache_tier = select_cache_tier(record, self._hot_owner_ids)

        if rule is None:
            decision = RoutingDecision(
                primary=self._default.primary,
                secondary=list(self._default.secondary),
                cache_tier=self._default.cache_tier,
                rationale=self._default.rationale,
            )
        elif rule.is_dual_primary:
            co_primaries = list(rule.dual_primary[1:])
            extras = [
                backend
                for backend in cross_link_secondaries(record, rule.primary)
                if backend not in rule.dual_primary
            ]
            joined = " + ".join(backend.value for backend in rule.dual_primary)
            decision = RoutingDecision(
                primary=rule.primary,
                secondary=[*co_primaries, *extras],
                cache_tier=cache_tier,
                rationale=f"{rule.rationale} (dual-primary: {joined})",
                dual_primary=True,
                matched_rule=rule.name,
            )
        else:
            decision = RoutingDecision(
                primary=rule.primary,
                secondary=cross_link_secondaries(record, rule.primary),
                cache_tier=cache_tier,
                rationale=rule.rationale,
                matched_rule=rule.name,
            )

        if count:
            self._count(decision)
        logger.debug(
            f"Routed {record.id} -> {decision.primary.value} "
            f"(secondary={[b.value for b in decision.secondary]}, tier={decision.cache_tier.value})",
            extra={
                "event": "routing.decided",
                "data": {"rule": decision.matched_rule, "dual_primary": decision.dual_primary},
            },
        )
        return decision

    def stats(self) -> dict[str, Any]:
        by_primary = Counter(rule.primary.value for rule in self._rules)
        by_category: Counter[str] = Counter()
        for rule in self._rules:
            by_category.update(category.value for category in rule.categories)
        with self._lock:
            decisions = {
                "total": self._decisions,
                "fallback": self._fallbacks,
                "by_primary": dict(self._counters["primary"]),
                "by_cache_tier": dict(self._counters["cache_tier"]),
                "by_rule": dict(self._counters["rule"]),
            }
        return {
            "total_rules": len(self._rules),
            "dual_primary_rules": sum(1 for rule in self._rules if rule.is_dual_primary),
            "rules_by_primary": dict(by_primary),
            "rules_by_category": dict(by_category),
            "hot_owner_ids": len(self._hot_owner_ids),
            "decisions": decisions,
        }

    def _match(self, record: KnowledgeRecord, match_by_category: bool) -> RoutingRule | None:
        if match_by_category and record.category is not None:
            for rule in self._rules:
                if rule.matches_category(record.category):
                    return rule
        for rule in self._rules:
            if rule.matches_content(record.content):
                return rule
        return None

    def _count(self, decision: RoutingDecision) -> None:
        with self._lock:
            self._decisions += 1
            self._counters["primary"][decision.primary.value] += 1
            self._counters["cache_tier"][decision.cache_tier.value] += 1
            if decision.matched_rule is None:
                self._fallbacks += 1
            else:
                self._counters["rule"][decision.matched_rule] += 1
