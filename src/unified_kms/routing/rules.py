"""
Routing rule table.

Rules are consulted in declaration order and the first match wins, both
for category lookups and for content pattern scans.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from unified_kms.exception import RoutingConfigurationError
from unified_kms.models import BackendName, CacheTier, ContentCategory

_I = re.IGNORECASE

DEFAULT_RATIONALE = "default/unclassified"

# Relation-indicating wording; routes document records into the graph too.
RELATION_PATTERN = re.compile(r"relationship|connect|link|associate|relate", _I)


@dataclass(frozen=True)
class RoutingRule:
    name: str
    pattern: re.Pattern[str]
    categories: tuple[ContentCategory, ...]
    primary: BackendName
    rationale: str
    dual_primary: tuple[BackendName, ...] = ()

    def __post_init__(self) -> None:
        validate_rule(self)

    @property
    def is_dual_primary(self) -> bool:
        return len(self.dual_primary) > 1

    def matches_category(self, category: ContentCategory | None) -> bool:
        return category is not None and category in self.categories

    def matches_content(self, content: str) -> bool:
        return self.pattern.search(content) is not None


@dataclass(frozen=True)
class DefaultDecision:
    primary: BackendName = BackendName.DOCUMENT
    secondary: tuple[BackendName, ...] = (BackendName.SEMANTIC_MEMORY,)
    cache_tier: CacheTier = CacheTier.WARM
    rationale: str = DEFAULT_RATIONALE


def validate_rule(rule: RoutingRule) -> None:
    if not rule.name:
        raise RoutingConfigurationError("routing rule requires a name", stage="routing")
    if not isinstance(rule.primary, BackendName):
        raise RoutingConfigurationError(
            f"rule '{rule.name}' names unknown primary backend: {rule.primary!r}",
            stage="routing",
        )
    for backend in rule.dual_primary:
        if not isinstance(backend, BackendName):
            raise RoutingConfigurationError(
                f"rule '{rule.name}' names unknown dual-primary backend: {backend!r}",
                stage="routing",
            )
    if rule.dual_primary:
        if len(set(rule.dual_primary)) != len(rule.dual_primary) or len(rule.dual_primary) < 2:
            raise RoutingConfigurationError(
                f"rule '{rule.name}' dual-primary needs at least two distinct backends",
                stage="routing",
            )
        if rule.dual_primary[0] != rule.primary:
            raise RoutingConfigurationError(
                f"rule '{rule.name}' must list its primary first in dual_primary",
                stage="routing",
            )


def validate_default(default: DefaultDecision) -> None:
    if not isinstance(default.primary, BackendName):
        raise RoutingConfigurationError(
            f"default decision names unknown backend: {default.primary!r}",
            stage="routing",
        )
    if default.primary in default.secondary:
        raise RoutingConfigurationError(
            "default decision repeats its primary in secondary", stage="routing"
        )
    if not all(isinstance(b, BackendName) for b in default.secondary):
        raise RoutingConfigurationError(
            "default decision names an unknown secondary backend", stage="routing"
        )


def _rule(
    name: str,
    pattern: str,
    categories: tuple[ContentCategory, ...],
    primary: BackendName,
    rationale: str,
    dual_primary: tuple[BackendName, ...] = (),
) -> RoutingRule:
    return RoutingRule(
        name=name,
        pattern=re.compile(pattern, _I),
        categories=categories,
        primary=primary,
        rationale=rationale,
        dual_primary=dual_primary,
    )


_SEMANTIC = BackendName.SEMANTIC_MEMORY
_GRAPH = BackendName.GRAPH
_DOCUMENT = BackendName.DOCUMENT
_C = ContentCategory


def default_rules() -> list[RoutingRule]:
    """Built-in rule table, in priority order."""
    return [
        _rule(
            "personal-experience",
            r"I like|I prefer|I enjoy|I love|I hate|I dislike|my favorite|personal|preference|"
            r"interest|hobby|learned about|discovered|remember|recall|experience|behavior|habit|"
            r"tendency|song|music|movie|book|food|travel|family|friend",
            (_C.MEMORY,),
            _SEMANTIC,
            "Personal experiences and preferences are semantic memories kept for contextual recall",
        ),
        _rule(
            "conceptual-relationship",
            r"relationship|connect|link|relate|associate|influence|cause|effect|network|"
            r"similar to|different from|reminds me of|connection between|concept|framework|"
            r"methodology|approach|strategy|technique|effective",
            (_C.INSIGHT, _C.RELATIONSHIP),
            _GRAPH,
            "Conceptual relationships use graph traversal to explore knowledge networks",
        ),
        _rule(
            "technical-structure",
            r"config|configuration|setting|schema|setup|installation|procedure|step.*by.*step|"
            r"documentation|specification|authentication|API|database|server|deployment|"
            r"build|compile",
            (_C.FACT, _C.PROCEDURE),
            _DOCUMENT,
            "Technical procedures and configurations need structured storage with precise queries",
        ),
        _rule(
            "learning-pattern",
            r"learn|learning|understand|breakthrough|discovery|pattern|evolution|improvement|"
            r"adaptation|growth|insight|realization|figured out|makes sense|clicked|understanding",
            (_C.PATTERN,),
            _SEMANTIC,
            "Learning patterns are semantic memories with relationship potential",
        ),
        _rule(
            "personal-project",
            r"project|working on|building|creating|developing|my.*code|my.*app|my.*website|"
            r"implementation|feature|bug.*fix|solution|achievement",
            (_C.FACT, _C.PROCEDURE),
            _SEMANTIC,
            "Personal projects combine lived experience with structured technical detail",
            dual_primary=(_SEMANTIC, _DOCUMENT),
        ),
        _rule(
            "cultural-content",
            r"song|music|artist|album|movie|film|book|author|cultural|art|literature|poem|"
            r"poetry|tradition|festival|holiday",
            (_C.MEMORY, _C.FACT),
            _SEMANTIC,
            "Cultural content carries personal meaning and structured metadata",
            dual_primary=(_SEMANTIC, _DOCUMENT),
        ),
        _rule(
            "learning-discovery",
            r"learned that|discovered that|found out that|realized that|understood that|"
            r"figured out that|breakthrough|discovery|makes sense now|clicked for me|understanding",
            (_C.MEMORY, _C.FACT),
            _SEMANTIC,
            "Learning discoveries pair the breakthrough experience with its factual content",
            dual_primary=(_SEMANTIC, _DOCUMENT),
        ),
    ]
