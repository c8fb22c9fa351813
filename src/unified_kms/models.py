"""
Knowledge models

Records, routing decisions and search results shared by the classifier,
router, cache and orchestrators. Everything crossing a backend or cache
boundary serializes with ``model_dump(mode="json")``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ContentCategory(str, Enum):
    """Closed set of knowledge categories."""

    MEMORY = "memory"
    INSIGHT = "insight"
    PATTERN = "pattern"
    RELATIONSHIP = "relationship"
    FACT = "fact"
    PROCEDURE = "procedure"


class KnowledgeDomain(str, Enum):
    OPERATIONAL = "operational"
    PERSONAL = "personal"
    TECHNICAL = "technical"
    CROSS_DOMAIN = "cross-domain"


class BackendName(str, Enum):
    SEMANTIC_MEMORY = "semantic-memory"
    GRAPH = "graph-backend"
    DOCUMENT = "document-backend"


class CacheTier(str, Enum):
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"
    SKIP = "skip"


class CacheStrategy(str, Enum):
    """Read-side caching strategy requested by the caller."""

    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"
    REALTIME = "realtime"


def _new_record_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordLink(BaseModel):
    """Directed, weighted edge to another record."""

    model_config = ConfigDict(frozen=True)

    target_id: str = Field(min_length=1)
    relation_type: str = Field(min_length=1)
    strength: float = Field(default=0.5, ge=0.0, le=1.0)


class KnowledgeInput(BaseModel):
    """Caller-supplied draft; missing fields are inferred before routing."""

    content: str
    category: ContentCategory | None = None
    domain: KnowledgeDomain | None = None
    owner_id: str | None = None
    group_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    links: list[RecordLink] = Field(default_factory=list)


class KnowledgeRecord(BaseModel):
    """The unit of storage. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_record_id, min_length=1)
    content: str = Field(min_length=1)
    category: ContentCategory
    domain: KnowledgeDomain = KnowledgeDomain.CROSS_DOMAIN
    owner_id: str | None = None
    group_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    links: list[RecordLink] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def _reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value

    @property
    def tags(self) -> list[str]:
        return list(self.attributes.get("tags") or [])


class RoutingDecision(BaseModel):
    """Output of the routing engine; consumed immediately, never persisted."""

    model_config = ConfigDict(frozen=True)

    primary: BackendName
    secondary: list[BackendName] = Field(default_factory=list)
    cache_tier: CacheTier = CacheTier.WARM
    rationale: str = ""
    dual_primary: bool = False
    matched_rule: str | None = None

    @model_validator(mode="after")
    def _check_disjoint(self) -> "RoutingDecision":
        if self.primary in self.secondary:
            raise ValueError(f"primary backend {self.primary.value} repeated in secondary")
        if len(set(self.secondary)) != len(self.secondary):
            raise ValueError("secondary backends must be unique")
        if self.dual_primary and not self.secondary:
            raise ValueError("dual-primary decision requires a co-primary backend")
        return self

    @property
    def backends(self) -> list[BackendName]:
        return [self.primary, *self.secondary]

    @property
    def required_backends(self) -> list[BackendName]:
        """Backends whose write failure aborts the store."""
        if self.dual_primary:
            return [self.primary, self.secondary[0]]
        return [self.primary]

    @property
    def best_effort_backends(self) -> list[BackendName]:
        return self.secondary[1:] if self.dual_primary else list(self.secondary)


class ResultItem(BaseModel):
    """Normalized search row returned by every backend adapter."""

    id: str | None = None
    content: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    attributes: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime | None = None
    category: ContentCategory | None = None
    domain: KnowledgeDomain | None = None
    owner_id: str | None = None
    source_backend: BackendName | None = None
    links: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        # Backends report raw similarity scores that may fall outside [0, 1].
        if value is None:
            return 0.5
        return min(1.0, max(0.0, float(value)))

    @field_validator("category", mode="before")
    @classmethod
    def _lenient_category(cls, value: Any) -> Any:
        if value in ContentCategory._value2member_map_:
            return value
        return None

    @field_validator("domain", mode="before")
    @classmethod
    def _lenient_domain(cls, value: Any) -> Any:
        if value in KnowledgeDomain._value2member_map_:
            return value
        return None


class TimeRange(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Record timestamps are UTC-aware; naive bounds are read as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SearchFilters(BaseModel):
    categories: list[ContentCategory] | None = None
    domains: list[KnowledgeDomain] | None = None
    owner_id: str | None = None
    group_id: str | None = None
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    time_range: TimeRange | None = None

    def matches(self, record: KnowledgeRecord) -> bool:
        """Apply the filters to a full record (used by in-process adapters)."""
        if self.categories and record.category not in self.categories:
            return False
        if self.domains and record.domain not in self.domains:
            return False
        if self.owner_id and record.owner_id != self.owner_id:
            return False
        if self.group_id and record.group_id != self.group_id:
            return False
        if self.min_confidence is not None and record.confidence < self.min_confidence:
            return False
        if self.time_range and not (
            self.time_range.start <= record.created_at <= self.time_range.end
        ):
            return False
        return True


class SearchOptions(BaseModel):
    max_results: int = Field(default=10, gt=0)
    include_links: bool = True
    cache_strategy: CacheStrategy = CacheStrategy.CONSERVATIVE


class KnowledgeQuery(BaseModel):
    """Query handed to each backend adapter."""

    text: str
    filters: SearchFilters = Field(default_factory=SearchFilters)
    options: SearchOptions = Field(default_factory=SearchOptions)


class StoreTimings(BaseModel):
    routing_ms: float = 0.0
    storage_ms: float = 0.0
    total_ms: float = 0.0


class StoreResult(BaseModel):
    id: str
    decision: RoutingDecision
    cached: bool = False
    backends_written: list[BackendName] = Field(default_factory=list)
    backends_failed: dict[str, str] = Field(default_factory=dict)
    timings: StoreTimings = Field(default_factory=StoreTimings)

    @property
    def partial(self) -> bool:
        return bool(self.backends_failed)


class SearchTimings(BaseModel):
    cache_check_ms: float = 0.0
    search_ms: float = 0.0
    merge_ms: float = 0.0
    total_ms: float = 0.0


class SearchResult(BaseModel):
    query: str
    results: list[ResultItem] = Field(default_factory=list)
    total: int = 0
    from_cache: bool = False
    per_backend_counts: dict[str, int] = Field(default_factory=dict)
    failed_backends: dict[str, str] = Field(default_factory=dict)
    timings: SearchTimings = Field(default_factory=SearchTimings)


class SearchRecommendation(BaseModel):
    backends: list[BackendName]
    suggested_filters: dict[str, Any] = Field(default_factory=dict)
    rationale: str = ""
