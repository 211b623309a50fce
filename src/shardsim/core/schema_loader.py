"""SQL schema loading and catalog introspection.

Applies the packaged ``schema/*.sql`` files to a shard and reads back what a
shard actually holds (tables, columns, DDL). Shards are allowed to drift, so
callers always introspect the shard in hand instead of assuming the packaged
schema.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NamedTuple

from shardsim.core.protocols import Connection

logger = logging.getLogger(__name__)

# Default schema directory
SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


class ColumnInfo(NamedTuple):
    """One row of ``PRAGMA table_info``. ``pk`` is the 1-based key position, 0 if none."""

    name: str
    type: str
    notnull: bool
    pk: int


class SchemaObject(NamedTuple):
    """An index, view or trigger from ``sqlite_master``."""

    type: str
    name: str
    table: str
    sql: str


def quote_identifier(name: str) -> str:
    """Quote a table or column name for interpolation into SQL text.

    Identifiers cannot be bound parameters; quoting keeps names read from a
    shard's own catalog from being parsed as SQL.
    """
    return '"' + name.replace('"', '""') + '"'


def _split_sql(sql: str) -> list[str]:
    """Split a SQL script into individual statements.

    Handles semicolon-terminated statements and skips ``--`` comment lines.
    """
    statements = []
    current = []
    for line in sql.splitlines():
        stripped = line.strip()
        if stripped.startswith("--") or not stripped:
            continue
        current.append(line)
        if stripped.endswith(";"):
            stmt = "\n".join(current).strip()
            if stmt and stmt != ";":
                statements.append(stmt)
            current = []
    # Remaining unterminated statement
    if current:
        stmt = "\n".join(current).strip()
        if stmt:
            statements.append(stmt)
    return statements


def get_schema_files(schema_dir: Path | str | None = None) -> list[Path]:
    """Get sorted list of SQL schema files.

    Parameters
    ----------
    schema_dir
        Directory containing ``.sql`` files. Defaults to core/schema/.

    Returns
    -------
    list[Path]
        Paths to SQL files sorted by filename (00_, 01_, etc.).
    """
    directory = Path(schema_dir) if schema_dir else SCHEMA_DIR
    if not directory.exists():
        return []
    return sorted(directory.glob("*.sql"))


def schema_statements(schema_dir: Path | str | None = None) -> list[str]:
    """Return every statement of every schema file, in file order."""
    statements: list[str] = []
    for sql_file in get_schema_files(schema_dir):
        statements.extend(_split_sql(sql_file.read_text(encoding="utf-8")))
    return statements


def apply_all_schemas(
    conn: Connection,
    schema_dir: Path | str | None = None,
) -> list[str]:
    """Apply all SQL schema files to a shard connection.

    Parameters
    ----------
    conn
        Shard connection.
    schema_dir
        Directory containing ``.sql`` files. Defaults to core/schema/.

    Returns
    -------
    list[str]
        List of applied schema filenames.
    """
    applied = []

    for sql_file in get_schema_files(schema_dir):
        sql = sql_file.read_text(encoding="utf-8")
        for statement in _split_sql(sql):
            conn.execute(statement)
        applied.append(sql_file.name)
        logger.debug("schema.applied %s", sql_file.name)

    conn.commit()
    return applied


def get_table_list(conn: Connection) -> list[str]:
    """Get the user tables of a shard, in creation order."""
    conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY rowid"
    )
    return [row[0] for row in conn.fetchall()]


def get_schema_objects(conn: Connection) -> list[SchemaObject]:
    """Get the indexes, views and triggers of a shard, in creation order.

    Automatic indexes (``sqlite_autoindex_*``) carry no DDL and are skipped;
    their table definition recreates them.
    """
    conn.execute(
        "SELECT type, name, tbl_name, sql FROM sqlite_master "
        "WHERE type IN ('index', 'view', 'trigger') "
        "AND sql IS NOT NULL AND name NOT LIKE 'sqlite_%' ORDER BY rowid"
    )
    return [SchemaObject(*row) for row in conn.fetchall()]


def schema_object_exists(conn: Connection, kind: str, name: str) -> bool:
    conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = ? AND name = ?",
        (kind, name),
    )
    return conn.fetchone() is not None


def get_table_schema(conn: Connection, table: str) -> str:
    """Get the CREATE TABLE statement for a table.

    Raises
    ------
    ValueError
        If table doesn't exist.
    """
    conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    )
    row = conn.fetchone()
    if row is None:
        raise ValueError(f"Table not found: {table}")
    return row[0]


def get_table_columns(conn: Connection, table: str) -> list[ColumnInfo]:
    """Get the columns of a table, in declaration order.

    Returns an empty list for a table that does not exist.
    """
    conn.execute(f"PRAGMA table_info({quote_identifier(table)})")
    return [
        ColumnInfo(name=row[1], type=row[2], notnull=bool(row[3]), pk=row[5])
        for row in conn.fetchall()
    ]
