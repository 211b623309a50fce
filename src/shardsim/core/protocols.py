"""
Canonical protocol definitions for shard-sim.

Every module that talks to a shard does so through the ``Connection``
protocol defined here, never through a driver class directly. Any object
with the same shape works (the SQLite adapter, a test double, ...).

Guardrails:
    ❌ DON'T: Duplicate Connection(Protocol) in other modules
    ✅ DO: Import from shardsim.core.protocols

    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts — implementations go in adapters
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for shard operations.

    ::

        execute(sql, params)   → Execute single statement
        fetchone()             → Get one result row
        fetchall()             → Get all result rows
        commit()               → Commit transaction
        rollback()             → Rollback transaction
        close()                → Release the connection
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


__all__ = ["Connection"]
