"""
Unified KMS

Routes free-text knowledge records to semantic-memory, graph and document
backends, caches them in a two-tier cache, and fans searches out across
every backend with partial-failure tolerance.
"""

from unified_kms.classification import Classification, ContentClassifier
from unified_kms.config import KMSConfig, get_config, kms_configure, reset_config
from unified_kms.exception import (
    BackendSearchError,
    BackendTimeoutError,
    ConfigurationError,
    InvalidContentError,
    KMSException,
    PrimaryWriteError,
    RoutingConfigurationError,
    SecondaryWriteError,
    SharedCacheError,
    UnknownBackendError,
)
from unified_kms.models import (
    BackendName,
    CacheStrategy,
    CacheTier,
    ContentCategory,
    KnowledgeDomain,
    KnowledgeInput,
    KnowledgeRecord,
    RecordLink,
    ResultItem,
    RoutingDecision,
    SearchFilters,
    SearchOptions,
    SearchResult,
    StoreResult,
)
from unified_kms.routing import RoutingEngine, RoutingRule
from unified_kms.service import KnowledgeService, create_knowledge_service

__version__ = "0.1.0"

__all__ = [
    "BackendName",
    "BackendSearchError",
    "BackendTimeoutError",
    "CacheStrategy",
    "CacheTier",
    "Classification",
    "ConfigurationError",
    "ContentCategory",
    "ContentClassifier",
    "InvalidContentError",
    "KMSConfig",
    "KMSException",
    "KnowledgeDomain",
    "KnowledgeInput",
    "KnowledgeRecord",
    "KnowledgeService",
    "PrimaryWriteError",
    "RecordLink",
    "ResultItem",
    "RoutingConfigurationError",
    "RoutingDecision",
    "RoutingEngine",
    "RoutingRule",
    "SearchFilters",
    "SearchOptions",
    "SearchResult",
    "SecondaryWriteError",
    "SharedCacheError",
    "StoreResult",
    "UnknownBackendError",
    "create_knowledge_service",
    "get_config",
    "kms_configure",
    "reset_config",
]
