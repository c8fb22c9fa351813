"""Backend adapters: one uniform contract over the three storage roles."""

from unified_kms.backends.base import BackendAdapter, record_to_item
from unified_kms.backends.config import (
    BackendsConfig,
    DocumentBackendConfig,
    GraphBackendConfig,
    SemanticBackendConfig,
)
from unified_kms.backends.memory import InMemoryBackend
from unified_kms.backends.registry import BackendRegistry, create_backends

__all__ = [
    "BackendAdapter",
    "BackendRegistry",
    "BackendsConfig",
    "DocumentBackendConfig",
    "GraphBackendConfig",
    "InMemoryBackend",
    "SemanticBackendConfig",
    "create_backends",
    "record_to_item",
]
