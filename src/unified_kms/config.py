"""
Unified KMS configuration system.

Supported configuration sources (highest to lowest priority):
1. Config file (toml/yaml/json)
2. Environment variables
3. Explicit code input
4. Code defaults

Config file example (kms.toml):
```toml
log_level = "INFO"

[cache]
redis_url = "redis://localhost:6379/0"
warm_ttl_seconds = 1800

[backends.graph]
type = "neo4j"
uri = "bolt://localhost:7687"

[routing]
hot_owner_ids = ["coach-42"]
```

Environment variable example:
```bash
export KMS_CACHE_REDIS_URL="redis://localhost:6379/0"
export KMS_ORCHESTRATOR_BACKEND_TIMEOUT_SECONDS=5
```
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from unified_kms.backends.config import BackendsConfig
from unified_kms.cache.config import CacheConfig
from unified_kms.exception import ConfigurationError
from unified_kms.log import setup_logging
from unified_kms.orchestrator.config import OrchestratorConfig
from unified_kms.routing.config import RoutingConfig

logger = logging.getLogger(__name__)


# === Config file sources ===


def _find_config_file() -> Path | None:
    """Find a config file by priority."""
    search_paths = [
        Path.cwd(),
        Path.cwd() / "config",
        Path.home() / ".config" / "unified-kms",
    ]
    extensions = [".toml", ".yaml", ".yml", ".json"]
    names = ["kms", "config"]

    for path in search_paths:
        for name in names:
            for ext in extensions:
                file = path / f"{name}{ext}"
                if file.exists():
                    return file
    return None


def _load_config_file(file_path: Path) -> dict[str, Any]:
    """Load a config file by extension."""
    suffix = file_path.suffix.lower()
    content = file_path.read_text(encoding="utf-8")

    if suffix == ".toml":
        return tomllib.loads(content)
    if suffix in (".yaml", ".yml"):
        return yaml.safe_load(content) or {}
    if suffix == ".json":
        return json.loads(content)
    raise ConfigurationError(f"Unsupported config file format: {suffix}", stage="config")


class FileConfigSource(PydanticBaseSettingsSource):
    """Config file source (toml/yaml/json)."""

    def __init__(self, settings_cls: type[BaseSettings], config_file: Path | None = None):
        super().__init__(settings_cls)
        self._file_data: dict[str, Any] = {}
        if config_file is not None:
            # An explicit file must load.
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}", stage="config")
            try:
                self._file_data = _load_config_file(config_file)
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"Failed to load config file: {config_file}", stage="config", cause=e
                ) from e
            return

        discovered = _find_config_file()
        if discovered is None:
            return
        try:
            self._file_data = _load_config_file(discovered)
        except Exception as e:
            logger.warning("Failed to load config file: %s, error=%s", discovered, e)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        value = self._file_data.get(field_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._file_data


# === Main config class ===


class KMSConfig(BaseSettings):
    """
    Global configuration.

    Supported configuration sources:
    1. Config file (toml/yaml/json)
    2. Environment variables (KMS_ prefix)
    3. Code input
    """

    model_config = SettingsConfigDict(
        env_prefix="KMS_",
        # Single underscore nests one level only:
        # KMS_CACHE_REDIS_URL -> cache.redis_url
        env_nested_delimiter="_",
        env_nested_max_split=1,
        extra="ignore",
    )

    config_file: Path | None = Field(default=None, exclude=True)

    cache: CacheConfig = Field(default_factory=CacheConfig)
    """Two-tier cache configuration."""

    backends: BackendsConfig = Field(default_factory=BackendsConfig)
    """Backend adapter selection and connection settings."""

    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    """Routing engine configuration."""

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    """Write/read orchestration configuration."""

    verbose: bool = Field(default=False, description="Enable verbose logging")

    log_level: str = Field(default="INFO", description="Log level")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Config file overrides env vars, which override code input."""
        init_data = init_settings()
        config_file = init_data.get("config_file")
        return (
            FileConfigSource(
                settings_cls,
                Path(config_file) if config_file else None,
            ),
            env_settings,
            init_settings,
        )


_config: KMSConfig | None = None


def kms_configure(
    config_file: str | Path | None = None,
    **kwargs: Any,
) -> KMSConfig:
    """
    Build the configuration, install it as the process default and set up logging.

    Priority (high to low): config file, ``KMS_`` environment variables,
    ``**kwargs``, defaults.
    """
    global _config
    config = KMSConfig(
        config_file=Path(config_file) if config_file else None,
        **kwargs,
    )

    if config.verbose:
        setup_logging(logging.DEBUG)
    else:
        setup_logging(getattr(logging, config.log_level.upper(), logging.INFO))

    logger.info(
        "Configuration loaded: semantic=%s graph=%s document=%s shared_cache=%s",
        config.backends.semantic.type,
        config.backends.graph.type,
        config.backends.document.type,
        "redis" if config.cache.redis_url else "disabled",
        extra={"event": "config.loaded"},
    )
    _config = config
    return config


def get_config() -> KMSConfig:
    """Return the process default, building one from file/env on first use."""
    global _config
    if _config is None:
        _config = KMSConfig()
    return _config


def reset_config() -> None:
    global _config
    _config = None
