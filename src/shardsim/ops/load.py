"""
Entity loading.

Writes one user, one post and one profile for each entity into the shard the
router picks.  Values are always bound parameters.

The three inserts are committed one at a time, not as a unit.  If the post
insert fails, the user row already written stays in place; the failure is
logged with the tables that did land and the next entity is loaded anyway.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from shardsim.core.connection import shard_connection
from shardsim.core.errors import ShardSimError, translate_error
from shardsim.core.logging import LogContext, get_logger
from shardsim.core.models import EntityRows
from shardsim.core.registry import ShardDescriptor, ShardRegistry
from shardsim.ops.responses import LoadReport, LoadResult, UnitFailure
from shardsim.ops.result import OperationResult, start_timer
from shardsim.ops.routing import route

logger = get_logger(__name__)

INSERT_USER = "INSERT INTO users (id, name) VALUES (?, ?)"
INSERT_POST = "INSERT INTO posts (id, userId, content) VALUES (?, ?, ?)"
INSERT_PROFILE = "INSERT INTO profile (userId, bio) VALUES (?, ?)"


def _insert_plan(rows: EntityRows) -> list[tuple[str, str, tuple]]:
    """(table, sql, params) in write order: user, post, profile."""
    return [
        ("users", INSERT_USER, (rows.user.id, rows.user.name)),
        ("posts", INSERT_POST, (rows.post.id, rows.post.user_id, rows.post.content)),
        ("profile", INSERT_PROFILE, (rows.profile.user_id, rows.profile.bio)),
    ]


def load_entity(entity_id: int, shard: ShardDescriptor) -> OperationResult[LoadResult]:
    """Write the user, post and profile rows for ``entity_id`` into ``shard``."""
    timer = start_timer()
    rows = EntityRows.for_entity(entity_id)
    written: list[str] = []

    with LogContext(entity_id=entity_id, shard=shard.name):
        try:
            with shard_connection(shard) as conn:
                for table, sql, params in _insert_plan(rows):
                    try:
                        conn.execute(sql, params)
                        conn.commit()
                    except sqlite3.Error as exc:
                        raise translate_error(exc).with_context(table=table) from exc
                    written.append(table)
        except ShardSimError as exc:
            exc.with_context(
                stage="load",
                entity_id=entity_id,
                shard=shard.name,
                shard_index=shard.index,
                tables_written=list(written),
            )
            logger.error("load.failed", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

        logger.info("load.completed", shard_index=shard.index, tables=written)

    return OperationResult.ok(
        LoadResult(
            entity_id=entity_id,
            shard=shard.name,
            shard_index=shard.index,
            tables_written=written,
        ),
        elapsed_ms=timer.elapsed_ms,
    )


def load_entities(
    entity_ids: Iterable[int],
    registry: ShardRegistry,
) -> OperationResult[LoadReport]:
    """Route and load each entity in order, continuing past failures.

    Fails with ``PARTIAL_FAILURE`` when any entity failed; the report is
    attached either way.
    """
    timer = start_timer()
    loaded: list[LoadResult] = []
    failed: list[UnitFailure] = []

    for entity_id in entity_ids:
        result = load_entity(entity_id, route(entity_id, registry))
        if result.success:
            loaded.append(result.data)
        else:
            failed.append(
                UnitFailure(
                    unit=f"entity:{entity_id}",
                    code=result.error.code,
                    message=result.error.message,
                    details=result.error.details,
                )
            )

    report = LoadReport(loaded=loaded, failed=failed)
    if failed:
        return OperationResult.fail(
            "PARTIAL_FAILURE",
            f"{len(failed)} of {len(loaded) + len(failed)} entities failed to load",
            data=report,
            elapsed_ms=timer.elapsed_ms,
        )
    return OperationResult.ok(report, elapsed_ms=timer.elapsed_ms)


__all__ = ["load_entities", "load_entity"]
