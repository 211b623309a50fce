"""
Timing utilities for stage logging.

Provides reusable helpers for logging step durations:
- Context manager: with log_step("migrate.export"):
- Stage wrapper:   with log_stage("provision"):

Design:
- Logs start at DEBUG, end at INFO (with duration_ms)
- A failing block logs ``<event>.error`` with timing and re-raises
- Each step gets a short span_id, bound into the log context so every
  event logged inside the block carries it
"""

import time
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog

from shardsim.core.logging import get_logger


def _generate_span_id() -> str:
    """Generate a short span ID (8 hex chars)."""
    return uuid.uuid4().hex[:8]


@dataclass
class TimingResult:
    """Result of a timed block."""

    step: str
    span_id: str = field(default_factory=_generate_span_id)
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    status: str = "ok"  # ok, error
    error_info: dict[str, Any] | None = None

    def stop(self) -> "TimingResult":
        """Record end time."""
        self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> "TimingResult":
        """Add a metric to include in the log output."""
        self.metrics[key] = value
        return self

    def set_error(self, e: Exception) -> "TimingResult":
        """Record error information."""
        self.status = "error"
        self.error_info = {
            "error_type": type(e).__name__,
            "error_message": str(e),
            "error_stack": traceback.format_exc(),
        }
        return self

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dict for logging."""
        result = {"duration_ms": round(self.duration_ms, 2)}
        result.update(self.metrics)
        return result

    def to_error_dict(self) -> dict[str, Any]:
        """Convert to dict for error logging."""
        result = self.to_log_dict()
        result["status"] = "error"
        if self.error_info:
            result.update(self.error_info)
        return result


@contextmanager
def log_step(event: str, level: str = "info", **extra_metrics: Any) -> Iterator[TimingResult]:
    """
    Context manager that logs step start/end with timing.

    Usage:
        with log_step("migrate.export", shard="insta1") as timer:
            snapshot = export_shard(...)
            timer.add_metric("statements", len(snapshot))

        # Logs:
        # DEBUG migrate.export.start span_id=a1b2c3d4 shard=insta1
        # INFO  migrate.export.end   span_id=a1b2c3d4 duration_ms=4.2 statements=62

    Args:
        event: Event name (e.g., "migrate.export")
        level: Log level for end message ("info" or "debug")
        **extra_metrics: Additional metrics to include in logs
    """
    log = get_logger("shardsim.timing")
    timer = TimingResult(step=event, metrics=dict(extra_metrics))

    with structlog.contextvars.bound_contextvars(span_id=timer.span_id):
        log.debug(f"{event}.start", **extra_metrics)
        try:
            yield timer
        except Exception as e:
            timer.stop()
            timer.set_error(e)
            log.error(f"{event}.error", **timer.to_error_dict())
            raise
        finally:
            timer.stop()

        getattr(log, level)(f"{event}.end", **timer.to_log_dict())


@contextmanager
def log_stage(stage: str, **extra: Any) -> Iterator[TimingResult]:
    """
    Log a major simulation stage at INFO level.

    Stages are: provision, evolve, load, migrate.

    Usage:
        with log_stage("load", entities=20) as timer:
            report = load_entities(...)
            timer.add_metric("failures", report.failed)
    """
    with structlog.contextvars.bound_contextvars(stage=stage):
        with log_step(f"stage.{stage}", level="info", **extra) as timer:
            yield timer


__all__ = ["TimingResult", "log_stage", "log_step"]
