"""Storage routing: rule table and decision engine."""

from unified_kms.routing.engine import RoutingEngine, cross_link_secondaries, select_cache_tier
from unified_kms.routing.rules import (
    DEFAULT_RATIONALE,
    DefaultDecision,
    RoutingRule,
    default_rules,
)

__all__ = [
    "RoutingEngine",
    "RoutingRule",
    "DefaultDecision",
    "DEFAULT_RATIONALE",
    "default_rules",
    "cross_link_secondaries",
    "select_cache_tier",
]
