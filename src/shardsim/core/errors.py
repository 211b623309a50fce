"""
Structured error types for shard-sim.

Every failure the simulation can hit maps onto a small, typed hierarchy.
Instead of letting driver exceptions leak out of a unit of work, each
operation translates them into a ShardSimError subclass that carries:
- **Category:** What kind of error (database, storage, config, ...)
- **Context:** Which shard, entity, table, stage or artifact was involved
- **Cause:** The chained driver exception for root cause analysis

Manifesto:
    - **Typed Error Taxonomy:** One class per failure the simulation names
    - **Rich Context:** Errors carry shard/entity metadata for logging
    - **Error Chaining:** Preserve the driver exception as the cause
    - **Log, don't abort:** Callers catch ShardSimError per unit of work

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        ShardSimError                             │
        │               (category, context, cause)                         │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError        DatabaseError           StorageError         │
        │  (CONFIG)           (DATABASE)              (STORAGE)            │
        │                          │                       │               │
        │                ConnectionFailure         ArtifactIOFailure       │
        │                SchemaConflict                                    │
        │                UniqueKeyConflict                                 │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    Adding context to an error:

    >>> error = SchemaConflict("duplicate column name: postDate")
    >>> error.with_context(shard="insta1", table="posts")
    SchemaConflict('duplicate column name: postDate', category=DATABASE)
    >>> error.context.shard
    'insta1'

    Translating a driver exception:

    >>> import sqlite3
    >>> translate_error(sqlite3.IntegrityError("UNIQUE constraint failed: users.id"))
    UniqueKeyConflict('UNIQUE constraint failed: users.id', category=DATABASE)

Guardrails:
    ❌ DON'T: Catch bare Exception around shard operations
    ✅ DO: Catch ShardSimError and log error.to_dict()

    ❌ DON'T: Swallow the original driver exception
    ✅ DO: Pass it as cause= (translate_error does this for you)

Tags:
    error-handling, exception-hierarchy, error-context, shard-sim
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and log routing.

    Attributes:
        NETWORK: Shard endpoint unreachable
        DATABASE: SQL execution, constraint or DDL failures
        STORAGE: Snapshot artifact file system errors
        VALIDATION: Bad input values
        CONFIG: Invalid registry or settings
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    STORAGE = "STORAGE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover the units of work the simulation logs against: a shard,
    an entity being loaded, a table, a stage, and the snapshot artifact. Any
    additional metadata goes in the ``metadata`` dict.

    Examples:
        >>> ctx = ErrorContext(shard="insta2", entity_id=8)
        >>> ctx.to_dict()
        {'shard': 'insta2', 'entity_id': 8}

    Guardrails:
        ❌ DON'T: Store credentials in metadata
        ✅ DO: Store the shard name or index, never its password

    Attributes:
        shard: Name of the shard where the error occurred
        shard_index: Registry index of that shard
        entity_id: Synthetic entity being loaded
        table: Table the failing statement targeted
        stage: Simulation stage (provision, evolve, load, migrate)
        artifact: Snapshot artifact path
        metadata: Additional key-value pairs
    """

    shard: str | None = None
    shard_index: int | None = None
    entity_id: int | None = None
    table: str | None = None
    stage: str | None = None
    artifact: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["shard", "shard_index", "entity_id", "table", "stage", "artifact"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ShardSimError(Exception):
    """
    Base exception for all shard-sim errors.

    Subclasses set ``default_category`` so the taxonomy is visible in logs
    without inspecting the class name.

    Examples:
        >>> error = ShardSimError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'ShardSimError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ShardSimError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaConflict("duplicate column").with_context(
                shard="insta1", table="posts"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(ShardSimError):
    """
    Configuration error.

    Raised at construction time (e.g. a registry with too few shards).
    """

    default_category = ErrorCategory.CONFIG


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(ShardSimError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE


class ConnectionFailure(DatabaseError):
    """Cannot reach or open a shard."""

    default_category = ErrorCategory.NETWORK


class SchemaConflict(DatabaseError):
    """DDL statement is invalid for the shard's current schema."""

    pass


class UniqueKeyConflict(DatabaseError):
    """Insert violates a primary-key or unique constraint."""

    pass


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(ShardSimError):
    """File system error."""

    default_category = ErrorCategory.STORAGE


class ArtifactIOFailure(StorageError):
    """Cannot delete, create or read the snapshot artifact."""

    pass


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_SCHEMA_CONFLICT_MARKERS = (
    "duplicate column",
    "already exists",
    "no such table",
    "no such column",
    "has no column",
)

_CONNECTION_MARKERS = (
    "unable to open database",
    "unable to open",
    "not a database",
)


def translate_error(error: Exception) -> ShardSimError:
    """
    Map a driver exception onto the shard-sim taxonomy.

    ShardSimError instances pass through unchanged. The original exception is
    always chained as the cause.
    """
    if isinstance(error, ShardSimError):
        return error

    message = str(error)
    lowered = message.lower()

    if isinstance(error, sqlite3.IntegrityError):
        if "unique" in lowered or "primary key" in lowered:
            return UniqueKeyConflict(message, cause=error)
        return DatabaseError(message, cause=error)

    if isinstance(error, sqlite3.OperationalError):
        if any(marker in lowered for marker in _SCHEMA_CONFLICT_MARKERS):
            return SchemaConflict(message, cause=error)
        if any(marker in lowered for marker in _CONNECTION_MARKERS):
            return ConnectionFailure(message, cause=error)
        return DatabaseError(message, cause=error)

    if isinstance(error, sqlite3.DatabaseError):
        if any(marker in lowered for marker in _CONNECTION_MARKERS):
            return ConnectionFailure(message, cause=error)
        return DatabaseError(message, cause=error)

    if isinstance(error, OSError):
        return ConnectionFailure(message, cause=error)

    return ShardSimError(message, category=ErrorCategory.UNKNOWN, cause=error)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ShardSimError",
    "ConfigError",
    "DatabaseError",
    "ConnectionFailure",
    "SchemaConflict",
    "UniqueKeyConflict",
    "StorageError",
    "ArtifactIOFailure",
    "translate_error",
]
