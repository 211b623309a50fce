"""
Operation result envelope.

Provides :class:`OperationResult` — a typed success/failure envelope that
every shard operation returns.  Operations never raise for a failed unit of
work; they log it and report it here, so the caller can move on to the next
shard or entity.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from shardsim.core.errors import ErrorCategory, ShardSimError

T = TypeVar("T")

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@dataclass(frozen=True, slots=True)
class OperationError:
    """Structured error detail for failed operations.

    Attributes:
        code: Machine-readable code (``SCHEMA_CONFLICT``, ``PARTIAL_FAILURE``, …).
        message: Human-readable description of the error.
        category: Optional :class:`ErrorCategory` for routing/alerting.
        details: Extra key/value context (shard, entity, table, …).
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult(Generic[T]):
    """Envelope returned by every operation function.

    Factory methods :meth:`ok`, :meth:`fail` and :meth:`from_error` should be
    used instead of the constructor directly.

    Attributes:
        success: ``True`` when the operation completed without error.
        data: The typed payload. Aggregate operations keep their report here
            even on failure.
        error: Structured error (``None`` on success).
        elapsed_ms: Wall-clock time the operation took.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    elapsed_ms: float = 0.0

    # ------------------------------------------------------------------ #
    # Factory helpers
    # ------------------------------------------------------------------ #

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a successful result."""
        return cls(
            success=True,
            data=data,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        data: T | None = None,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result."""
        return cls(
            success=False,
            data=data,
            error=OperationError(
                code=code,
                message=message,
                category=category,
                details=details or {},
            ),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(
        cls,
        error: ShardSimError,
        *,
        data: T | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result from a :class:`ShardSimError`.

        The code is the error class name in upper snake case
        (``UniqueKeyConflict`` → ``UNIQUE_KEY_CONFLICT``).
        """
        return cls.fail(
            error_code(error),
            error.message,
            data=data,
            category=error.category,
            details=error.context.to_dict(),
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (for JSON output)."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data
        if self.error is not None:
            d["error"] = {
                "code": self.error.code,
                "message": self.error.message,
            }
            if self.error.category is not None:
                d["error"]["category"] = self.error.category.value
            if self.error.details:
                d["error"]["details"] = self.error.details
        if self.elapsed_ms:
            d["elapsed_ms"] = round(self.elapsed_ms, 2)
        return d


def error_code(error: ShardSimError) -> str:
    """Upper snake case code for an error class name."""
    return _WORD_BOUNDARY.sub("_", type(error).__name__).upper()


# ------------------------------------------------------------------ #
# Timing helper
# ------------------------------------------------------------------ #


class _Timer:
    """Minimal stopwatch for timing operations."""

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Return a lightweight timer.  Use ``timer.elapsed_ms`` when done."""
    return _Timer()
