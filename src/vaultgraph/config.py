"""
vaultgraph configuration

Settings are loaded from (highest priority first):
1. Keyword arguments passed to GraphSettings
2. Environment variables (prefixed with VAULTGRAPH_)
3. A .env file in the working directory

Key settings:
- VAULTGRAPH_VAULT_PATH: Root directory of the Markdown vault
- VAULTGRAPH_MAX_PATH_LENGTH: Hop ceiling for every path search
- VAULTGRAPH_TRAVERSAL_STRATEGY: auto, simple or bidirectional
- VAULTGRAPH_CACHE_TTL_SECONDS: Validity window of the cached graph
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class TraversalStrategy(str, Enum):
    """Shortest-path strategy preference."""
    AUTO = "auto"  # pick by graph size
    SIMPLE = "simple"  # single-source BFS
    BIDIRECTIONAL = "bidirectional"


class GraphSettings(BaseSettings):
    """Every recognized vaultgraph option with its default."""

    model_config = SettingsConfigDict(
        env_prefix="VAULTGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    vault_path: Path = Field(default=Path("."), description="Root directory of the vault")

    # Path search
    max_path_length: int = Field(default=10, ge=1, description="Maximum hops in any path")
    max_paths_to_show: int = Field(default=5, ge=1, description="Maximum alternative paths")
    traversal_strategy: TraversalStrategy = TraversalStrategy.AUTO
    bidirectional_threshold: int = Field(
        default=500, ge=1, description="Node count at which auto switches to bidirectional BFS"
    )

    # Graph construction
    max_tag_matches: int = Field(default=50, ge=0, description="Tag edges kept per note")
    batch_size: int = Field(default=5, ge=1)
    parallel_batch_size: int = Field(default=10, ge=1)
    parallel_processing: bool = True
    include_backlinks: bool = True
    include_embedded_links: bool = True
    include_tags: bool = True

    # Cache
    cache_graph: bool = True
    cache_ttl_seconds: float = Field(default=60.0, gt=0)

    log_level: str = "INFO"

    @field_validator("vault_path", mode="before")
    @classmethod
    def _normalize_vault_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("VAULTGRAPH_VAULT_PATH cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        cleaned = str(value).strip().upper()
        if cleaned not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}")
        return cleaned

    @property
    def effective_batch_size(self) -> int:
        """Batch size used by the graph builder."""
        return self.parallel_batch_size if self.parallel_processing else self.batch_size


@lru_cache(maxsize=1)
def get_settings() -> GraphSettings:
    """Load and cache settings."""
    settings = GraphSettings()
    logger.debug("Loaded settings", extra={"vault_path": str(settings.vault_path)})
    return settings


def reload_settings() -> GraphSettings:
    """Clear cached settings (useful for tests) and reload."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["GraphSettings", "TraversalStrategy", "get_settings", "reload_settings"]
