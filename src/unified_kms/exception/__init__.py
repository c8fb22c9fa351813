# -*- coding: utf-8 -*-
"""Unified exports for orchestrator exceptions."""

from unified_kms.exception.backend_search_failed import BackendSearchError
from unified_kms.exception.backend_timeout import BackendTimeoutError
from unified_kms.exception.base import FailureSeverity, KMSException
from unified_kms.exception.configuration import ConfigurationError
from unified_kms.exception.invalid_content import InvalidContentError
from unified_kms.exception.primary_write_failed import PrimaryWriteError
from unified_kms.exception.routing_configuration import RoutingConfigurationError
from unified_kms.exception.secondary_write_failed import SecondaryWriteError
from unified_kms.exception.shared_cache_failed import SharedCacheError
from unified_kms.exception.unknown_backend import UnknownBackendError

__all__ = [
    "FailureSeverity",
    "KMSException",
    "PrimaryWriteError",
    "UnknownBackendError",
    "InvalidContentError",
    "SecondaryWriteError",
    "BackendSearchError",
    "BackendTimeoutError",
    "SharedCacheError",
    "RoutingConfigurationError",
    "ConfigurationError",
]
