"""
Content classifier

Maps raw content to a category, a confidence score and suggested tags.
Pure and deterministic: no I/O, safe to call speculatively (routing
previews call it without writing anything).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from unified_kms.classification.patterns import (
    CATEGORY_PATTERNS,
    FRAMEWORK_PATTERNS,
    LANGUAGE_PATTERNS,
    LINK_SUGGESTIONS,
    PROJECT_PATTERNS,
    RECURRING_PHRASE,
    TEMPORAL_PATTERNS,
    PatternRule,
)
from unified_kms.exception import InvalidContentError
from unified_kms.models import ContentCategory, KnowledgeDomain

DEFAULT_CATEGORY = ContentCategory.FACT
BASE_CONFIDENCE = 0.5
CONFIDENCE_SPAN = 0.4
MAX_INFERRED_CONFIDENCE = 0.9


@dataclass(frozen=True)
class Classification:
    category: ContentCategory
    confidence: float
    score: float
    tags: list[str] = field(default_factory=list)
    project: str | None = None
    temporal: str | None = None
    language: str | None = None
    frameworks: list[str] = field(default_factory=list)
    related_patterns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LinkSuggestion:
    relation_type: str
    description: str


def _first_match(rules: list[PatternRule], content: str) -> str | None:
    for rule in rules:
        if rule.matches(content):
            return rule.outcome
    return None


class ContentClassifier:
    """Rule-table classifier. Tables default to the built-in patterns."""

    def __init__(
        self,
        category_patterns: Mapping[ContentCategory, list[PatternRule]] | None = None,
        project_patterns: list[PatternRule] | None = None,
    ) -> None:
        self._category_patterns = dict(category_patterns or CATEGORY_PATTERNS)
        self._project_patterns = list(project_patterns or PROJECT_PATTERNS)

    def classify(self, content: str, hint: ContentCategory | str | None = None) -> Classification:
        if not isinstance(content, str) or not content.strip():
            raise InvalidContentError(
                "content must be a non-empty string",
                stage="classification",
            )

        best_category = DEFAULT_CATEGORY
        best_score = 0.0
        for category, rules in self._category_patterns.items():
            if not rules:
                continue
            matched = sum(1 for rule in rules if rule.matches(content))
            score = matched / len(rules)
            if score > best_score:
                best_category, best_score = category, score

        category = _resolve_hint(hint) or best_category
        confidence = min(MAX_INFERRED_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_SPAN * best_score)

        tags: list[str] = []
        project = _first_match(self._project_patterns, content)
        if project:
            tags.append(project)
        temporal = _first_match(TEMPORAL_PATTERNS, content)
        language = _first_match(LANGUAGE_PATTERNS, content)
        if language:
            tags.append(language)
        frameworks = [rule.outcome for rule in FRAMEWORK_PATTERNS if rule.matches(content)]
        tags.extend(frameworks)
        tags.append(category.value)
        if temporal:
            tags.append(temporal)

        related = [m.group(0).strip() for m in RECURRING_PHRASE.finditer(content)][:3]

        return Classification(
            category=category,
            confidence=round(confidence, 4),
            score=best_score,
            tags=list(dict.fromkeys(tags)),
            project=project,
            temporal=temporal,
            language=language,
            frameworks=frameworks,
            related_patterns=related,
        )

    def infer_domain(self, classification: Classification) -> KnowledgeDomain:
        if classification.project:
            return KnowledgeDomain.TECHNICAL
        if classification.category in (ContentCategory.MEMORY, ContentCategory.INSIGHT):
            return KnowledgeDomain.PERSONAL
        return KnowledgeDomain.CROSS_DOMAIN

    def build_attributes(
        self,
        classification: Classification,
        attributes: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge caller attributes with the inferred context block."""
        merged: dict[str, Any] = dict(attributes or {})
        merged["inferred"] = {
            "category": classification.category.value,
            "confidence": classification.confidence,
            "project": classification.project,
            "temporal": classification.temporal,
            "language": classification.language,
            "frameworks": list(classification.frameworks),
        }
        existing_tags = [str(tag) for tag in merged.get("tags") or [] if tag]
        merged["tags"] = list(dict.fromkeys([*existing_tags, *classification.tags]))
        merged["search_hints"] = list(classification.related_patterns)
        return merged

    def suggest_links(self, content: str) -> list[LinkSuggestion]:
        return [
            LinkSuggestion(rule.outcome, description)
            for rule, description in LINK_SUGGESTIONS
            if rule.matches(content)
        ]

    def elicitation_questions(self, classification: Classification) -> list[str]:
        questions: list[str] = []
        if not classification.project and classification.category == ContentCategory.PROCEDURE:
            questions.append("Which project is this solution for?")
        if classification.confidence < 0.7:
            questions.append(
                f"Is this best categorized as {classification.category.value}?"
            )
        if len(classification.frameworks) > 2:
            questions.append("Which is the primary framework involved?")
        if not classification.temporal and classification.category == ContentCategory.INSIGHT:
            questions.append("When did you discover this insight?")
        return questions


def _resolve_hint(hint: ContentCategory | str | None) -> ContentCategory | None:
    if hint is None:
        return None
    if isinstance(hint, ContentCategory):
        return hint
    try:
        return ContentCategory(str(hint).lower())
    except ValueError:
        return None
