"""Two-tier cache: process-local fast tier and optional shared tier."""

from unified_kms.cache.config import CacheConfig
from unified_kms.cache.fast_tier import CacheEntry, FastTier
from unified_kms.cache.keys import knowledge_key, normalize_query, search_key
from unified_kms.cache.shared_tier import RedisSharedCache, SharedCache
from unified_kms.cache.tiered import TieredCache

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "FastTier",
    "SharedCache",
    "RedisSharedCache",
    "TieredCache",
    "knowledge_key",
    "search_key",
    "normalize_query",
]
