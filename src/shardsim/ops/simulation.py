"""
Simulation runner.

Runs the four stages once, strictly in order:

    provision all shards → evolve one shard → load entities → migrate

Each stage runs inside :func:`~shardsim.core.timing.log_stage`, so its
duration is logged.  A stage that reports failures does not stop the next
stage; the report records how many units failed in each one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shardsim.core.errors import ConfigError
from shardsim.core.logging import get_logger
from shardsim.core.registry import ShardRegistry
from shardsim.core.settings import ShardSimSettings
from shardsim.core.timing import log_stage
from shardsim.ops.evolve import evolve_shard
from shardsim.ops.load import load_entities
from shardsim.ops.migrate import migrate_shard
from shardsim.ops.provision import provision_shards
from shardsim.ops.result import OperationResult
from shardsim.ops.routing import EVEN_SHARD_INDEX, ODD_SHARD_INDEX

logger = get_logger(__name__)

STAGES = ("provision", "evolve", "load", "migrate")


@dataclass(frozen=True, slots=True)
class StageOutcome:
    """How one stage went."""

    stage: str
    success: bool
    failures: int
    elapsed_ms: float
    result: OperationResult[Any]


@dataclass
class SimulationReport:
    """Per-stage outcomes of one run, in execution order."""

    stages: list[StageOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(s.success for s in self.stages)

    @property
    def total_failures(self) -> int:
        return sum(s.failures for s in self.stages)

    def stage(self, name: str) -> StageOutcome | None:
        for outcome in self.stages:
            if outcome.stage == name:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total_failures": self.total_failures,
            "stages": [
                {
                    "stage": s.stage,
                    "success": s.success,
                    "failures": s.failures,
                    "elapsed_ms": round(s.elapsed_ms, 2),
                    "error": s.result.error.code if s.result.error else None,
                }
                for s in self.stages
            ],
        }


def _failure_count(result: OperationResult[Any]) -> int:
    if result.success:
        return 0
    failed = getattr(result.data, "failed", None)
    if failed is None:
        imported = getattr(result.data, "imported", None)
        failed = getattr(imported, "failed", None)
    return len(failed) if failed else 1


def validate_topology(registry: ShardRegistry, settings: ShardSimSettings) -> None:
    """Fail fast when a configured shard index is outside the registry.

    Raises:
        ConfigError: an index in ``settings`` has no shard.
    """
    checks = {
        "evolve_shard_index": settings.evolve_shard_index,
        "migration_source_index": settings.migration_source_index,
        "migration_target_index": settings.migration_target_index,
        "routing": max(ODD_SHARD_INDEX, EVEN_SHARD_INDEX),
    }
    for name, index in checks.items():
        if index >= len(registry):
            raise ConfigError(
                f"{name}={index} but the registry has {len(registry)} shards"
            ).with_context(shard_index=index)
    if settings.migration_source_index == settings.migration_target_index:
        raise ConfigError(
            f"Migration source and target are both shard {settings.migration_source_index}"
        )


def run_simulation(
    registry: ShardRegistry,
    settings: ShardSimSettings | None = None,
    *,
    entity_count: int | None = None,
    artifact_path: Path | str | None = None,
) -> SimulationReport:
    """Run provision → evolve → load → migrate once against ``registry``.

    ``entity_count`` and ``artifact_path`` override the settings values.
    Unit failures are logged and counted, never raised.

    Raises:
        ConfigError: the settings name a shard the registry does not have.
    """
    settings = settings or ShardSimSettings()
    validate_topology(registry, settings)
    count = entity_count if entity_count is not None else settings.entity_count
    artifact = Path(artifact_path) if artifact_path is not None else settings.artifact_path

    report = SimulationReport()

    def record(stage: str, timer: Any, result: OperationResult[Any]) -> None:
        failures = _failure_count(result)
        timer.add_metric("success", result.success)
        timer.add_metric("failures", failures)
        report.stages.append(
            StageOutcome(
                stage=stage,
                success=result.success,
                failures=failures,
                elapsed_ms=result.elapsed_ms,
                result=result,
            )
        )

    with log_stage("provision", shards=len(registry)) as timer:
        record("provision", timer, provision_shards(registry))

    evolve_target = registry[settings.evolve_shard_index]
    with log_stage("evolve", shard=evolve_target.name) as timer:
        record("evolve", timer, evolve_shard(evolve_target))

    with log_stage("load", entities=count) as timer:
        record("load", timer, load_entities(range(1, count + 1), registry))

    source = registry[settings.migration_source_index]
    target = registry[settings.migration_target_index]
    with log_stage("migrate", source=source.name, target=target.name) as timer:
        record("migrate", timer, migrate_shard(source, target, artifact))

    logger.info(
        "simulation.completed",
        success=report.success,
        failures=report.total_failures,
    )
    return report


__all__ = [
    "STAGES",
    "SimulationReport",
    "StageOutcome",
    "run_simulation",
    "validate_topology",
]
