"""
Typed response objects for operations.

Each dataclass represents the *output* of a single operation beyond the
generic :class:`OperationResult` envelope.  Responses carry only domain
data — no CLI formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ------------------------------------------------------------------ #
# Shared
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class UnitFailure:
    """One failed unit of work inside an aggregate operation.

    ``unit`` names what failed: a shard name, ``entity:<id>``, or
    ``row:<table>``.
    """

    unit: str
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


# ------------------------------------------------------------------ #
# Provisioning / evolution
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ProvisionResult:
    """Result payload for :func:`shardsim.ops.provision.provision_shard`."""

    shard: str
    shard_index: int
    tables: list[str]
    schema_files: list[str]


@dataclass(frozen=True, slots=True)
class ProvisionReport:
    """Result payload for :func:`shardsim.ops.provision.provision_shards`."""

    provisioned: list[ProvisionResult]
    failed: list[UnitFailure]


@dataclass(frozen=True, slots=True)
class EvolveResult:
    """Result payload for :func:`shardsim.ops.evolve.evolve_shard`."""

    shard: str
    shard_index: int
    table: str
    column: str


# ------------------------------------------------------------------ #
# Loading
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Result payload for :func:`shardsim.ops.load.load_entity`."""

    entity_id: int
    shard: str
    shard_index: int
    tables_written: list[str]


@dataclass(frozen=True, slots=True)
class LoadReport:
    """Result payload for :func:`shardsim.ops.load.load_entities`."""

    loaded: list[LoadResult]
    failed: list[UnitFailure]

    def entities_on(self, shard_index: int) -> list[int]:
        """Entity ids fully loaded into the given shard."""
        return [r.entity_id for r in self.loaded if r.shard_index == shard_index]


# ------------------------------------------------------------------ #
# Migration
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Result payload for :func:`shardsim.ops.migrate.import_snapshot`."""

    target: str
    target_index: int
    statements: int
    tables_created: list[str]
    columns_added: list[str]
    objects_created: list[str]
    rows_applied: int
    failed: list[UnitFailure]


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Result payload for :func:`shardsim.ops.migrate.migrate_shard`."""

    source: str
    target: str
    artifact: str
    statements_exported: int
    imported: ImportResult | None = None


# ------------------------------------------------------------------ #
# Inspection
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class TableSummary:
    """Columns and row count of one table on one shard."""

    table: str
    columns: list[str]
    rows: int


@dataclass(frozen=True, slots=True)
class ShardSummary:
    """Result payload for :func:`shardsim.ops.inspect.describe_shard`."""

    shard: str
    shard_index: int
    tables: list[TableSummary]

    def table(self, name: str) -> TableSummary | None:
        for summary in self.tables:
            if summary.table == name:
                return summary
        return None
