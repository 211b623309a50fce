"""
Schema evolution on a single shard.

Adds a nullable ``postDate TIMESTAMP`` column to ``posts`` on exactly one
shard, leaving every other shard on the original schema.  This is how the
simulation produces schema drift.

The change is not idempotent: applying it to a shard that already has the
column fails with ``SCHEMA_CONFLICT``.  Call it once per shard.
"""

from __future__ import annotations

from shardsim.core.connection import shard_connection
from shardsim.core.errors import ShardSimError
from shardsim.core.logging import get_logger
from shardsim.core.registry import ShardDescriptor
from shardsim.ops.responses import EvolveResult
from shardsim.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

EVOLVED_TABLE = "posts"
EVOLVED_COLUMN = "postDate"
EVOLVE_DDL = f"ALTER TABLE {EVOLVED_TABLE} ADD COLUMN {EVOLVED_COLUMN} TIMESTAMP"


def evolve_shard(shard: ShardDescriptor) -> OperationResult[EvolveResult]:
    """Add ``posts.postDate`` to one shard."""
    timer = start_timer()

    try:
        with shard_connection(shard) as conn:
            conn.execute(EVOLVE_DDL)
            conn.commit()
    except ShardSimError as exc:
        exc.with_context(stage="evolve", table=EVOLVED_TABLE)
        logger.error("evolve.failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info(
        "evolve.completed",
        shard=shard.name,
        shard_index=shard.index,
        table=EVOLVED_TABLE,
        column=EVOLVED_COLUMN,
    )
    return OperationResult.ok(
        EvolveResult(
            shard=shard.name,
            shard_index=shard.index,
            table=EVOLVED_TABLE,
            column=EVOLVED_COLUMN,
        ),
        elapsed_ms=timer.elapsed_ms,
    )


__all__ = ["EVOLVED_COLUMN", "EVOLVED_TABLE", "evolve_shard"]
