"""
Cache configuration
"""

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    """Two-tier cache configuration"""

    fast_max_entries: int = Field(
        default=10_000,
        gt=0,
        description="Fast tier entry cap; soonest-expiring entries are evicted first",
    )

    fast_ttl_cap_seconds: int = Field(
        default=300,
        gt=0,
        description="Upper bound for any fast tier TTL, including promotions",
    )

    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Background sweep interval for expired fast tier entries",
    )

    hot_ttl_seconds: int = Field(default=300, gt=0, description="TTL for the hot tier")
    warm_ttl_seconds: int = Field(default=1800, gt=0, description="TTL for the warm tier")
    cold_ttl_seconds: int = Field(default=3600, gt=0, description="TTL for the cold tier")

    redis_url: str | None = Field(
        default=None,
        description="Shared tier Redis URL; unset means fast tier only",
    )

    key_prefix: str = Field(
        default="kms:",
        description="Shared tier key prefix",
    )

    shared_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Timeout applied to every shared tier call",
    )
