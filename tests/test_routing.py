"""
Routing engine unit tests

Module under test: unified_kms.routing
"""

import re

import pytest

from unified_kms.exception import RoutingConfigurationError
from unified_kms.models import (
    BackendName,
    CacheTier,
    ContentCategory,
    KnowledgeDomain,
    KnowledgeRecord,
    RecordLink,
)
from unified_kms.routing import DEFAULT_RATIONALE, DefaultDecision, RoutingEngine, RoutingRule

SEMANTIC = BackendName.SEMANTIC_MEMORY
GRAPH = BackendName.GRAPH
DOCUMENT = BackendName.DOCUMENT


def _record(content="Lorem ipsum dolor sit amet", **fields) -> KnowledgeRecord:
    fields.setdefault("category", ContentCategory.FACT)
    return KnowledgeRecord(content=content, **fields)


@pytest.fixture
def engine() -> RoutingEngine:
    return RoutingEngine()


class TestCategoryMatching:
    """Category-first rule selection"""

    def test_memory_routes_to_semantic(self, engine):
        decision = engine.route(_record(category=ContentCategory.MEMORY))

        assert decision.primary == SEMANTIC
        assert decision.secondary == [DOCUMENT]
        assert decision.matched_rule == "personal-experience"
        assert decision.cache_tier == CacheTier.WARM

    def test_scenario_a_personal_memory_is_hot(self, engine):
        decision = engine.route(
            _record(
                "Client prefers morning coaching sessions",
                category=ContentCategory.MEMORY,
                domain=KnowledgeDomain.PERSONAL,
            )
        )

        assert decision.primary == SEMANTIC
        assert decision.cache_tier == CacheTier.HOT

    def test_semantic_primary_adds_graph_when_linked(self, engine):
        decision = engine.route(
            _record(
                category=ContentCategory.MEMORY,
                links=[RecordLink(target_id="other", relation_type="SIMILAR_TO")],
            )
        )

        assert decision.secondary == [DOCUMENT, GRAPH]

    def test_insight_routes_to_graph(self, engine):
        decision = engine.route(_record(category=ContentCategory.INSIGHT))

        assert decision.primary == GRAPH
        assert decision.secondary == [SEMANTIC]

    def test_graph_primary_adds_document_for_technical(self, engine):
        decision = engine.route(
            _record(category=ContentCategory.RELATIONSHIP, domain=KnowledgeDomain.TECHNICAL)
        )

        assert decision.primary == GRAPH
        assert decision.secondary == [SEMANTIC, DOCUMENT]

    def test_fact_routes_to_document_with_relation_cross_link(self, engine):
        decision = engine.route(_record("The service connects to the database"))

        assert decision.primary == DOCUMENT
        assert decision.secondary == [SEMANTIC, GRAPH]
        assert decision.cache_tier == CacheTier.COLD


class TestContentMatching:
    """Pattern scan when category matching is off"""

    def test_dual_primary_rule(self, engine):
        decision = engine.route(
            _record("Working on a new feature for my app"), match_by_category=False
        )

        assert decision.dual_primary is True
        assert decision.primary == SEMANTIC
        assert decision.secondary[0] == DOCUMENT
        assert decision.required_backends == [SEMANTIC, DOCUMENT]
        assert decision.best_effort_backends == []
        assert "dual-primary" in decision.rationale
        assert decision.matched_rule == "personal-project"

    def test_dual_primary_keeps_independent_cache_tier(self, engine):
        decision = engine.route(
            _record("Working on a new feature for my app", domain=KnowledgeDomain.PERSONAL),
            match_by_category=False,
        )

        assert decision.cache_tier == CacheTier.HOT

    def test_no_match_uses_default(self, engine):
        decision = engine.route(_record(), match_by_category=False)

        assert decision.primary == DOCUMENT
        assert decision.secondary == [SEMANTIC]
        assert decision.cache_tier == CacheTier.WARM
        assert decision.rationale == DEFAULT_RATIONALE
        assert decision.matched_rule is None

    def test_empty_rule_table_always_defaults(self):
        engine = RoutingEngine(rules=[])

        decision = engine.route(_record(category=ContentCategory.MEMORY))

        assert decision.rationale == DEFAULT_RATIONALE
        assert decision.primary == DOCUMENT


class TestCacheTierCascade:
    """Cache tier selection"""

    def test_hot_owner(self):
        engine = RoutingEngine(hot_owner_ids=["coach-1"])

        decision = engine.route(
            _record(owner_id="coach-1", domain=KnowledgeDomain.TECHNICAL)
        )

        assert decision.cache_tier == CacheTier.HOT

    def test_high_confidence_is_warm(self, engine):
        decision = engine.route(_record(confidence=0.85))

        assert decision.cache_tier == CacheTier.WARM

    def test_procedure_is_cold(self, engine):
        decision = engine.route(_record(category=ContentCategory.PROCEDURE))

        assert decision.cache_tier == CacheTier.COLD


class TestDecisionBackends:
    """primary never appears in secondary"""

    @pytest.mark.parametrize("category", list(ContentCategory))
    @pytest.mark.parametrize("domain", list(KnowledgeDomain))
    @pytest.mark.parametrize("linked", [False, True])
    def test_primary_not_in_secondary(self, engine, category, domain, linked):
        links = [RecordLink(target_id="x", relation_type="PART_OF")] if linked else []
        for match_by_category in (True, False):
            decision = engine.route(
                _record(
                    "Working on a relationship between my app and the database",
                    category=category,
                    domain=domain,
                    links=links,
                ),
                match_by_category=match_by_category,
            )

            assert decision.primary not in decision.secondary
            assert len(set(decision.secondary)) == len(decision.secondary)


class TestRuleRegistration:
    """add_rule / remove_rule / validation"""

    def test_add_rule_takes_effect(self, engine):
        engine.add_rule(
            RoutingRule(
                name="ops-runbook",
                pattern=re.compile("runbook", re.IGNORECASE),
                categories=(),
                primary=GRAPH,
                rationale="Runbooks link incidents to fixes",
            ),
            index=0,
        )

        decision = engine.route(_record("Runbook for the outage"), match_by_category=False)

        assert decision.matched_rule == "ops-runbook"
        assert decision.primary == GRAPH

    def test_duplicate_rule_name_rejected(self, engine):
        existing = engine.rules[0]

        with pytest.raises(RoutingConfigurationError):
            engine.add_rule(existing)

    def test_remove_rule_by_name_or_pattern(self, engine):
        pattern = engine.rules[1].pattern.pattern

        assert engine.remove_rule("personal-experience") is True
        assert engine.remove_rule(pattern) is True
        assert engine.remove_rule("does-not-exist") is False
        assert len(engine.rules) == 5

    def test_single_backend_dual_primary_rejected(self):
        with pytest.raises(RoutingConfigurationError):
            RoutingRule(
                name="broken",
                pattern=re.compile("x"),
                categories=(),
                primary=SEMANTIC,
                rationale="",
                dual_primary=(SEMANTIC,),
            )

    def test_unknown_primary_rejected(self):
        with pytest.raises(RoutingConfigurationError):
            RoutingRule(
                name="broken",
                pattern=re.compile("x"),
                categories=(),
                primary="mongo",
                rationale="",
            )

    def test_invalid_default_rejected_at_construction(self):
        with pytest.raises(RoutingConfigurationError):
            RoutingEngine(default=DefaultDecision(primary=DOCUMENT, secondary=(DOCUMENT,)))


class TestStats:
    """stats() counters"""

    def test_rule_and_decision_counts(self, engine):
        engine.route(_record(category=ContentCategory.MEMORY))
        engine.route(_record(), match_by_category=False)

        stats = engine.stats()

        assert stats["total_rules"] == 7
        assert stats["dual_primary_rules"] == 3
        assert stats["rules_by_primary"][SEMANTIC.value] == 5
        assert stats["decisions"]["total"] == 2
        assert stats["decisions"]["fallback"] == 1
        assert stats["decisions"]["by_rule"] == {"personal-experience": 1}

    def test_uncounted_route_leaves_counters(self, engine):
        decision = engine.route(_record(category=ContentCategory.MEMORY), count=False)

        assert decision.primary == SEMANTIC
        assert engine.stats()["decisions"] == {
            "total": 0,
            "fallback": 0,
            "by_primary": {},
            "by_cache_tier": {},
            "by_rule": {},
        }
