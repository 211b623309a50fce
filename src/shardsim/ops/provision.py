"""
Schema provisioning.

Applies the packaged shard schema (``users``, ``posts``, ``profile``) to each
shard.  Every statement is ``CREATE TABLE IF NOT EXISTS`` so provisioning is
idempotent.  Shards are provisioned independently: one shard failing is
logged and the rest still get their tables.
"""

from __future__ import annotations

from shardsim.core.connection import shard_connection
from shardsim.core.errors import ShardSimError
from shardsim.core.logging import get_logger
from shardsim.core.registry import ShardDescriptor, ShardRegistry
from shardsim.core.schema_loader import apply_all_schemas, get_table_list
from shardsim.ops.responses import ProvisionReport, ProvisionResult, UnitFailure
from shardsim.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def provision_shard(shard: ShardDescriptor) -> OperationResult[ProvisionResult]:
    """Create the shard tables on one shard (idempotent)."""
    timer = start_timer()

    try:
        with shard_connection(shard) as conn:
            applied = apply_all_schemas(conn)
            tables = get_table_list(conn)
    except ShardSimError as exc:
        exc.with_context(stage="provision")
        logger.error("provision.failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info("provision.completed", shard=shard.name, shard_index=shard.index, tables=tables)
    return OperationResult.ok(
        ProvisionResult(
            shard=shard.name,
            shard_index=shard.index,
            tables=tables,
            schema_files=applied,
        ),
        elapsed_ms=timer.elapsed_ms,
    )


def provision_shards(registry: ShardRegistry) -> OperationResult[ProvisionReport]:
    """Provision every shard in the registry, best-effort.

    Fails with ``PARTIAL_FAILURE`` when any shard could not be provisioned;
    the report is attached either way.
    """
    timer = start_timer()
    provisioned: list[ProvisionResult] = []
    failed: list[UnitFailure] = []

    for shard in registry:
        result = provision_shard(shard)
        if result.success:
            provisioned.append(result.data)
        else:
            failed.append(
                UnitFailure(
                    unit=shard.name,
                    code=result.error.code,
                    message=result.error.message,
                    details=result.error.details,
                )
            )

    report = ProvisionReport(provisioned=provisioned, failed=failed)
    if failed:
        return OperationResult.fail(
            "PARTIAL_FAILURE",
            f"{len(failed)} of {len(registry)} shards failed to provision",
            data=report,
            elapsed_ms=timer.elapsed_ms,
        )
    return OperationResult.ok(report, elapsed_ms=timer.elapsed_ms)


__all__ = ["provision_shard", "provision_shards"]
