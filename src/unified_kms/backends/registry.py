"""
Backend registry and factory.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from unified_kms.backends.base import BackendAdapter
from unified_kms.backends.config import BackendsConfig
from unified_kms.backends.memory import InMemoryBackend
from unified_kms.exception import UnknownBackendError
from unified_kms.models import BackendName

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Resolves backend identifiers to adapters."""

    def __init__(self, adapters: Iterable[BackendAdapter] = ()) -> None:
        self._adapters: dict[BackendName, BackendAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: BackendAdapter) -> None:
        self._adapters[adapter.name] = adapter

    def get(self, name: BackendName | str) -> BackendAdapter:
        try:
            key = BackendName(name)
        except ValueError:
            raise UnknownBackendError(
                f"unknown backend identifier: {name!r}", backend=str(name), stage="resolve"
            ) from None
        adapter = self._adapters.get(key)
        if adapter is None:
            raise UnknownBackendError(
                f"backend not registered: {key.value}", backend=key.value, stage="resolve"
            )
        return adapter

    def __contains__(self, name: object) -> bool:
        try:
            return BackendName(name) in self._adapters
        except ValueError:
            return False

    @property
    def names(self) -> list[BackendName]:
        return list(self._adapters)

    def adapters(self) -> list[BackendAdapter]:
        return list(self._adapters.values())

    async def initialize_all(self) -> None:
        await asyncio.gather(*(adapter.initialize() for adapter in self._adapters.values()))

    async def close_all(self) -> None:
        results = await asyncio.gather(
            *(adapter.close() for adapter in self._adapters.values()),
            return_exceptions=True,
        )
        for adapter, result in zip(self._adapters.values(), results):
            if isinstance(result, Exception):
                logger.warning(f"Backend close failed: {adapter.name.value}: {result}")


def create_backends(config: BackendsConfig | None = None) -> BackendRegistry:
    """Build one adapter per role from configuration."""
    config = config or BackendsConfig()
    adapters: list[BackendAdapter] = []

    semantic = config.semantic
    if semantic.type == "chroma":
        from unified_kms.backends.semantic import ChromaSemanticBackend

        adapters.append(
            ChromaSemanticBackend(
                path=semantic.path,
                host=semantic.host,
                port=semantic.port,
                collection=semantic.collection,
                namespace=semantic.namespace,
            )
        )
    else:
        adapters.append(InMemoryBackend(BackendName.SEMANTIC_MEMORY))

    graph = config.graph
    if graph.type == "neo4j":
        from unified_kms.backends.graph import Neo4jGraphBackend

        adapters.append(
            Neo4jGraphBackend(
                uri=graph.uri,
                username=graph.username,
                password=graph.password,
                database=graph.database,
            )
        )
    else:
        adapters.append(InMemoryBackend(BackendName.GRAPH))

    document = config.document
    if document.type == "sql":
        from unified_kms.backends.document import SQLDocumentBackend

        adapters.append(SQLDocumentBackend(url=document.url, table=document.table))
    else:
        adapters.append(InMemoryBackend(BackendName.DOCUMENT))

    logger.info(
        f"Backends configured: semantic={semantic.type}, graph={graph.type}, "
        f"document={document.type}"
    )
    return BackendRegistry(adapters)
