"""
Classification pattern tables.

Plain data: ordered ``(outcome, pattern)`` pairs evaluated top to bottom.
Adding a rule means appending a row, never touching the dispatch code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from unified_kms.models import ContentCategory

_I = re.IGNORECASE


@dataclass(frozen=True)
class PatternRule:
    outcome: str
    pattern: re.Pattern[str]

    def matches(self, content: str) -> bool:
        return self.pattern.search(content) is not None


def _rules(outcome: str, *patterns: str) -> list[PatternRule]:
    return [PatternRule(outcome, re.compile(p, _I)) for p in patterns]


# Declaration order decides ties between categories with the same score.
CATEGORY_PATTERNS: dict[ContentCategory, list[PatternRule]] = {
    ContentCategory.MEMORY: _rules(
        "memory",
        r"\b(remember|recalled?|last time|previously)\b",
        r"\b(prefer|like|enjoy|hate|dislike)\b",
        r"\b(my|I|me|mine)\b.*\b(think|feel|believe|want)\b",
    ),
    ContentCategory.INSIGHT: _rules(
        "insight",
        r"\b(realized?|discovered?|learned?|understood)\b",
        r"\b(aha|breakthrough|eureka|finally)\b",
        r"\b(turns out|it seems|apparently)\b",
    ),
    ContentCategory.PATTERN: _rules(
        "pattern",
        r"\b(always|usually|often|frequently|consistently)\b",
        r"\b(pattern|trend|correlation|whenever)\b",
        r"\b(every time|each time|repeatedly)\b",
    ),
    ContentCategory.PROCEDURE: _rules(
        "procedure",
        r"\b(fixed|solved|resolved|implemented)\b",
        r"\b(bug|issue|error|problem)\b.*\b(fix|solution)\b",
        r"\b(step \d+|first|then|finally|to do)\b",
        r"\b(install|configure|setup|deploy)\b",
    ),
    ContentCategory.FACT: _rules(
        "fact",
        r"\b(config|setting|parameter|value)\b",
        r"\b(version|release|update)\b.*\b\d+\.\d+",
        r"\b(enabled?|disabled?|true|false)\b",
        r"\b(url|endpoint|api|port)\b.*[:=]",
    ),
    ContentCategory.RELATIONSHIP: _rules(
        "relationship",
        r"\b(relates? to|connects? to|links? to)\b",
        r"\b(causes?|effects?|results? in)\b",
        r"\b(depends? on|requires?|needs?)\b",
    ),
}

# First match wins.
PROJECT_PATTERNS: list[PatternRule] = [
    PatternRule("knowledge-management", re.compile(r"KMS|knowledge management", _I)),
    PatternRule("coaching-platform", re.compile(r"coaching.?(clone|platform)", _I)),
    PatternRule("lead-pipeline", re.compile(r"gondola|lead.?pipeline", _I)),
    PatternRule("auth-system", re.compile(r"OAuth|JWKS|authentication", _I)),
]

# First match wins.
TEMPORAL_PATTERNS: list[PatternRule] = _rules(
    "recent", r"\b(today|now|currently|just|right now)\b"
) + _rules(
    "historical", r"\b(yesterday|last week|last month|previously|before)\b"
) + _rules(
    "future", r"\b(tomorrow|next|will|going to|plan to)\b"
)

# First match wins.
LANGUAGE_PATTERNS: list[PatternRule] = [
    PatternRule("typescript", re.compile(r"\b(typescript|tsx|interface)\b|\.ts\b|\btype\s+\w+\s*=", _I)),
    PatternRule("javascript", re.compile(r"\b(javascript|jsx|const|let|var)\b|\.js\b", _I)),
    PatternRule("python", re.compile(r"\b(python|pip|def\s+\w+|import\s+\w+)\b|\.py\b", _I)),
    PatternRule("rust", re.compile(r"\b(rust|cargo|fn\s+\w+|impl)\b|\.rs\b", _I)),
    PatternRule("go", re.compile(r"\b(golang|func\s+\w+|package\s+\w+)\b|\.go\b", _I)),
]

# Every match is collected.
FRAMEWORK_PATTERNS: list[PatternRule] = [
    PatternRule("react", re.compile(r"\b(react|useState|useEffect|jsx)\b", _I)),
    PatternRule("fastapi", re.compile(r"\b(fastapi|APIRouter|Depends\()", _I)),
    PatternRule("django", re.compile(r"\b(django|manage\.py|queryset)\b", _I)),
    PatternRule("mongodb", re.compile(r"\b(mongodb|mongoose|findOne)\b", _I)),
    PatternRule("neo4j", re.compile(r"\b(neo4j|cypher)\b", _I)),
    PatternRule("semantic-memory", re.compile(r"\b(mem0|episodic|semantic memory)\b", _I)),
    PatternRule("redis", re.compile(r"\b(redis|cache|TTL)\b", _I)),
    PatternRule("mcp", re.compile(r"\b(MCP|model context protocol)\b", _I)),
]

# Every match is collected, in declaration order.
LINK_SUGGESTIONS: list[tuple[PatternRule, str]] = [
    (PatternRule("SOLVES", re.compile(r"\b(fix|solution|resolved?)\b", _I)),
     "Links to the problem this solves"),
    (PatternRule("CAUSES", re.compile(r"\b(causes?|leads? to|results? in)\b", _I)),
     "Links to effects or outcomes"),
    (PatternRule("REQUIRES", re.compile(r"\b(requires?|depends? on|needs?)\b", _I)),
     "Links to dependencies"),
    (PatternRule("SIMILAR_TO", re.compile(r"\b(similar|like|same as)\b", _I)),
     "Links to similar concepts"),
    (PatternRule("PART_OF", re.compile(r"\b(part of|belongs? to|included? in)\b", _I)),
     "Links to parent concept"),
]

RECURRING_PHRASE = re.compile(
    r"\b(always|usually|often|frequently|never|rarely)\s+[\w\s]{3,30}", _I
)
