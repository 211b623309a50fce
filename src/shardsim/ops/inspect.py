"""
Shard inspection.

Reads back what a shard holds: its tables, their columns and row counts.
Used to show schema drift between shards after a run.
"""

from __future__ import annotations

from shardsim.core.connection import shard_connection
from shardsim.core.errors import ShardSimError
from shardsim.core.logging import get_logger
from shardsim.core.registry import ShardDescriptor, ShardRegistry
from shardsim.core.schema_loader import get_table_columns, get_table_list, quote_identifier
from shardsim.ops.responses import ShardSummary, TableSummary
from shardsim.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def describe_shard(shard: ShardDescriptor) -> OperationResult[ShardSummary]:
    """Tables of one shard with their columns and row counts."""
    timer = start_timer()
    tables: list[TableSummary] = []

    try:
        with shard_connection(shard) as conn:
            for table in get_table_list(conn):
                columns = [c.name for c in get_table_columns(conn, table)]
                conn.execute(f"SELECT COUNT(*) FROM {quote_identifier(table)}")
                tables.append(TableSummary(table=table, columns=columns, rows=conn.fetchone()[0]))
    except ShardSimError as exc:
        exc.with_context(stage="inspect")
        logger.error("inspect.failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    return OperationResult.ok(
        ShardSummary(shard=shard.name, shard_index=shard.index, tables=tables),
        elapsed_ms=timer.elapsed_ms,
    )


def describe_shards(registry: ShardRegistry) -> list[OperationResult[ShardSummary]]:
    """:func:`describe_shard` for every shard, in registry order."""
    return [describe_shard(shard) for shard in registry]


__all__ = ["describe_shard", "describe_shards"]
