"""
Classifier unit tests

Module under test: unified_kms.classification
"""

import pytest

from unified_kms.classification import Classification, ContentClassifier
from unified_kms.exception import InvalidContentError
from unified_kms.models import ContentCategory, KnowledgeDomain

INSIGHT_TEXT = "I finally realized the breakthrough: turns out the cache was stale"


@pytest.fixture
def classifier() -> ContentClassifier:
    return ContentClassifier()


class TestClassify:
    """classify() scoring and confidence"""

    def test_highest_score_wins(self, classifier):
        """Every insight rule matches, so insight wins outright."""
        result = classifier.classify(INSIGHT_TEXT)

        assert result.category == ContentCategory.INSIGHT
        assert result.score == 1.0
        assert result.confidence == 0.9

    def test_no_match_defaults_to_fact(self, classifier):
        result = classifier.classify("Lorem ipsum dolor sit amet")

        assert result.category == ContentCategory.FACT
        assert result.score == 0.0
        assert result.confidence == 0.5

    def test_tie_resolved_by_declaration_order(self, classifier):
        """memory and insight both score 1/3; memory is declared first."""
        result = classifier.classify("I remember I learned it")

        assert result.category == ContentCategory.MEMORY
        assert result.confidence == pytest.approx(0.5 + 0.4 / 3, abs=1e-4)

    def test_deterministic(self, classifier):
        first = classifier.classify(INSIGHT_TEXT)
        second = classifier.classify(INSIGHT_TEXT)

        assert (first.category, first.confidence) == (second.category, second.confidence)
        assert first == second

    def test_hint_overrides_category_but_keeps_score(self, classifier):
        result = classifier.classify(INSIGHT_TEXT, hint="memory")

        assert result.category == ContentCategory.MEMORY
        assert result.confidence == 0.9

    def test_invalid_hint_is_ignored(self, classifier):
        result = classifier.classify(INSIGHT_TEXT, hint="bogus")

        assert result.category == ContentCategory.INSIGHT

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_blank_content_rejected(self, classifier, content):
        with pytest.raises(InvalidContentError) as exc_info:
            classifier.classify(content)

        assert exc_info.value.stage == "classification"


class TestContextTags:
    """Domain-context signals"""

    def test_project_language_framework_and_temporal(self, classifier):
        result = classifier.classify("We use FastAPI with python for the KMS today")

        assert result.project == "knowledge-management"
        assert result.language == "python"
        assert result.frameworks == ["fastapi"]
        assert result.temporal == "recent"
        assert result.tags == ["knowledge-management", "python", "fastapi", "fact", "recent"]

    def test_tags_are_unique(self, classifier):
        result = classifier.classify("redis cache TTL and more redis")

        assert len(result.tags) == len(set(result.tags))

    def test_recurring_phrases_collected(self, classifier):
        result = classifier.classify("The build always fails on Mondays")

        assert result.related_patterns
        assert result.related_patterns[0].startswith("always")


class TestEnrichment:
    """infer_domain, build_attributes, suggest_links, elicitation_questions"""

    def test_infer_domain(self, classifier):
        assert classifier.infer_domain(classifier.classify("KMS rollout notes")) == KnowledgeDomain.TECHNICAL
        assert classifier.infer_domain(classifier.classify(INSIGHT_TEXT)) == KnowledgeDomain.PERSONAL
        assert (
            classifier.infer_domain(classifier.classify("Lorem ipsum dolor sit amet"))
            == KnowledgeDomain.CROSS_DOMAIN
        )

    def test_build_attributes_merges_caller_fields(self, classifier):
        classification = classifier.classify("We use FastAPI with python for the KMS today")

        attributes = classifier.build_attributes(
            classification, {"tags": ["custom", "python"], "source": "import"}
        )

        assert attributes["source"] == "import"
        assert attributes["tags"][0] == "custom"
        assert attributes["tags"].count("python") == 1
        assert attributes["inferred"]["category"] == "fact"
        assert attributes["inferred"]["project"] == "knowledge-management"
        assert "search_hints" in attributes

    def test_suggest_links(self, classifier):
        suggestions = classifier.suggest_links("This fix requires a restart")

        assert [s.relation_type for s in suggestions] == ["SOLVES", "REQUIRES"]

    def test_elicitation_questions(self, classifier):
        classification = Classification(
            category=ContentCategory.PROCEDURE, confidence=0.6, score=0.25
        )

        questions = classifier.elicitation_questions(classification)

        assert len(questions) == 2
        assert "project" in questions[0]
        assert "procedure" in questions[1]

    def test_confident_classification_needs_no_questions(self, classifier):
        classification = Classification(
            category=ContentCategory.FACT, confidence=0.9, score=1.0
        )

        assert classifier.elicitation_questions(classification) == []
