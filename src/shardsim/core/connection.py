"""Connection factory — open shard connections from URL strings.

This is the **single entry point** for opening a shard connection.  Every
operation acquires its connection through :func:`shard_connection`, which
closes it on every exit path; nothing is pooled or reused across calls.

Supported URL schemes
---------------------
==================  ==========================================  ==============
Scheme              Example                                     Backend
==================  ==========================================  ==============
``memory``          ``memory://insta1``                         named SQLite RAM
``sqlite``          ``sqlite:///path/to/shard.db``              SQLite file
``(file path)``     ``./data/shard.db``                         SQLite file
==================  ==========================================  ==============

Named in-memory databases are shared by every connection in the process
that uses the same name, and disappear when the last one closes.  The
registry keeps one idle anchor per in-memory shard (see
:func:`pin_endpoint`) so they behave like the file-backed kind.

Usage
-----
::

    from shardsim.core.connection import shard_connection

    with shard_connection(registry[0]) as conn:
        conn.execute("SELECT COUNT(*) FROM users")
        print(conn.fetchone()[0])
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from shardsim.core.errors import ConfigError, ConnectionFailure, translate_error
from shardsim.core.logging import get_logger
from shardsim.core.sqlite_conn import SqliteConnection

if TYPE_CHECKING:
    from shardsim.core.registry import ShardDescriptor

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a shard connection."""

    backend: str
    """Backend identifier, always ``"sqlite"`` for now."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(url: str) -> tuple[str, str]:
    """Parse a shard URL into (scheme, target).

    Returns
    -------
    tuple[str, str]
        (scheme, target) where scheme is one of ``"memory"``, ``"sqlite"``
        or ``"file"``.  For ``"memory"`` the target is the database name.

    Raises
    ------
    ConnectionFailure
        For an empty URL or an anonymous in-memory database, which no
        second connection could ever reach.
    """
    if not url or url in (":memory:", "memory", "memory://"):
        raise ConnectionFailure(
            f"Shard endpoint {url!r} must name its database (e.g. memory://insta1)"
        )

    if url.startswith("memory://"):
        return "memory", url[len("memory://"):]

    if url.startswith("sqlite:///"):
        return "sqlite", url[len("sqlite:///"):]

    if url.startswith("sqlite://"):
        return "sqlite", url[len("sqlite://"):]

    return "file", url


def validate_endpoint(url: str) -> None:
    """Reject an endpoint no connection could use.

    Raises
    ------
    ConfigError
        For an empty URL or an anonymous in-memory database.
    """
    try:
        _parse_url(url)
    except ConnectionFailure as exc:
        raise ConfigError(exc.message, cause=exc) from exc


def _memory_uri(name: str) -> str:
    return f"file:{name}?mode=memory&cache=shared"


def display_name(url: str) -> str:
    """Short name for a shard URL (``memory://insta1`` → ``insta1``)."""
    try:
        scheme, target = _parse_url(url)
    except ConnectionFailure:
        return url or "<unnamed>"
    if scheme == "memory":
        return target
    return Path(target).stem or target


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(url: str) -> tuple[SqliteConnection, ConnectionInfo]:
    """Open a connection to one shard.

    Parameters
    ----------
    url:
        ``memory://name``, ``sqlite:///path`` or a bare file path.

    Returns
    -------
    tuple[SqliteConnection, ConnectionInfo]

    Raises
    ------
    ConnectionFailure
        If the database cannot be opened.
    """
    scheme, target = _parse_url(url)

    try:
        if scheme == "memory":
            conn = SqliteConnection(_memory_uri(target), uri=True)
            return conn, ConnectionInfo(backend="sqlite", persistent=False, url=url)

        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved)
        return conn, ConnectionInfo(
            backend="sqlite",
            persistent=True,
            url=url,
            resolved_path=resolved,
        )
    except (sqlite3.Error, OSError) as exc:
        raise ConnectionFailure(f"Cannot open {url}: {exc}", cause=exc) from exc


def pin_endpoint(url: str) -> SqliteConnection | None:
    """Open an idle anchor connection for in-memory endpoints.

    Returns ``None`` for file-backed endpoints, which need no anchor.
    """
    scheme, _target = _parse_url(url)
    if scheme != "memory":
        return None
    conn, _info = create_connection(url)
    return conn


@contextmanager
def shard_connection(shard: ShardDescriptor) -> Iterator[SqliteConnection]:
    """Acquire a connection scoped to one operation.

    Driver errors raised inside the block are translated into the
    shard-sim taxonomy with the shard attached as context.  The connection
    is closed on every exit path; uncommitted work is discarded.
    """
    try:
        conn, _info = create_connection(shard.endpoint)
    except ConnectionFailure as exc:
        raise exc.with_context(shard=shard.name, shard_index=shard.index)

    try:
        yield conn
    except sqlite3.Error as exc:
        error = translate_error(exc)
        raise error.with_context(shard=shard.name, shard_index=shard.index) from exc
    finally:
        conn.close()


__all__ = [
    "ConnectionInfo",
    "create_connection",
    "display_name",
    "pin_endpoint",
    "shard_connection",
    "validate_endpoint",
]
