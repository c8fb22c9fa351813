"""
Routing configuration
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from unified_kms.exception import RoutingConfigurationError
from unified_kms.models import BackendName, CacheTier
from unified_kms.routing.rules import DEFAULT_RATIONALE, DefaultDecision


class RoutingConfig(BaseModel):
    """Routing engine configuration"""

    hot_owner_ids: list[str] = Field(
        default_factory=list,
        description="Owners whose records always use the hot cache tier",
    )

    default_primary: str = Field(
        default=BackendName.DOCUMENT.value,
        description="Primary backend when no rule matches",
    )

    default_secondary: list[str] = Field(
        default_factory=lambda: [BackendName.SEMANTIC_MEMORY.value],
        description="Secondary backends when no rule matches",
    )

    default_cache_tier: str = Field(
        default=CacheTier.WARM.value,
        description="Cache tier when no rule matches",
    )

    def to_default_decision(self) -> DefaultDecision:
        try:
            return DefaultDecision(
                primary=BackendName(self.default_primary),
                secondary=tuple(BackendName(name) for name in self.default_secondary),
                cache_tier=CacheTier(self.default_cache_tier),
                rationale=DEFAULT_RATIONALE,
            )
        except ValueError as exc:
            raise RoutingConfigurationError(
                f"invalid default routing decision: {exc}", stage="routing", cause=exc
            ) from exc
