"""
Orchestrator configuration
"""

from pydantic import BaseModel, Field


class OrchestratorConfig(BaseModel):
    """Write/read orchestration configuration"""

    backend_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to every backend store/search call",
    )

    default_max_results: int = Field(
        default=10,
        gt=0,
        description="Result cap when the caller does not pass one",
    )

    aggressive_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Search cache TTL for the aggressive strategy",
    )

    conservative_ttl_seconds: int = Field(
        default=1800,
        gt=0,
        description="Search cache TTL for the conservative strategy",
    )
