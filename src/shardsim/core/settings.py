"""Settings for shard-sim.

All configuration is explicit, validated at startup, and environment-driven.
The shard endpoint list is part of the settings object and is handed to the
registry at construction; nothing reads it from module-level state.

Features:
    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **env_prefix:** ``SHARDSIM_`` namespacing for every field
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from shardsim.core.settings import ShardSimSettings
    >>> settings = ShardSimSettings()
    >>> settings.shard_urls[0]
    'memory://insta1'

    Overriding from the environment (lists are JSON)::

        SHARDSIM_SHARD_URLS='["sqlite:///a.db", "sqlite:///b.db"]'
        SHARDSIM_ENTITY_COUNT=50
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SHARD_URLS = [
    "memory://insta1",
    "memory://insta2",
    "memory://insta3",
]


class ShardSimSettings(BaseSettings):
    """Runtime configuration for one simulation run.

    Fields
    ──────
    shard_urls              : Ordered shard endpoints (index = position)
    shard_user              : Credential user shared by every shard
    shard_password          : Credential secret shared by every shard
    entity_count            : Entities loaded, ids 1..entity_count
    evolve_shard_index      : Shard that receives the postDate column
    migration_source_index  : Shard exported by the migration step
    migration_target_index  : Shard the snapshot is replayed into
    artifact_path           : Transient snapshot file
    log_level               : Structlog log level
    json_logs               : JSON log lines (None = auto, JSON when not a tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="SHARDSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Topology ─────────────────────────────────────────────────
    shard_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_SHARD_URLS))
    shard_user: str = "sa"
    shard_password: SecretStr = SecretStr("")

    # ── Workload ─────────────────────────────────────────────────
    entity_count: int = Field(default=20, ge=1)
    evolve_shard_index: int = Field(default=0, ge=0)
    migration_source_index: int = Field(default=0, ge=0)
    migration_target_index: int = Field(default=1, ge=0)

    # ── Storage ──────────────────────────────────────────────────
    artifact_path: Path = Path("insta1_dump.jsonl")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


__all__ = ["DEFAULT_SHARD_URLS", "ShardSimSettings"]
