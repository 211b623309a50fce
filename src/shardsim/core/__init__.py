"""Shard-sim core: errors, settings, logging, connections and the shard registry.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (ShardSimError, translate_error)
        protocols.py       Connection protocol
        models.py          User / Post / Profile rows derived from an entity id

    Layer 2 -- Shards & Storage
        connection.py      Connection factory + per-operation shard_connection()
        sqlite_conn.py     SQLite adapter implementing Connection
        registry.py        ShardDescriptor + ShardRegistry
        schema/            Shard DDL (users, posts, profile)
        schema_loader.py   Schema application + catalog introspection

    Layer 3 -- Cross-Cutting Concerns
        logging.py         Structured logging (structlog)
        timing.py          log_step / log_stage duration logging
        settings.py        ShardSimSettings (pydantic-settings)
"""

from shardsim.core.errors import (
    ArtifactIOFailure,
    ConfigError,
    ConnectionFailure,
    SchemaConflict,
    ShardSimError,
    UniqueKeyConflict,
)
from shardsim.core.registry import ShardDescriptor, ShardRegistry
from shardsim.core.settings import ShardSimSettings

__all__ = [
    "ArtifactIOFailure",
    "ConfigError",
    "ConnectionFailure",
    "SchemaConflict",
    "ShardDescriptor",
    "ShardRegistry",
    "ShardSimError",
    "ShardSimSettings",
    "UniqueKeyConflict",
]
