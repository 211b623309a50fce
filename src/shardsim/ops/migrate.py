"""
Shard migration by dump-and-load.

Copies one shard onto another through a snapshot artifact on disk.  Export
writes every user table's definition, then every row, then the indexes,
views and triggers, as JSON Lines; import replays the file against the
target.

Manifesto:
    - **Copy, not merge:** Rows are appended.  A primary key that already
      exists on the target fails that one row with ``UniqueKeyConflict`` and
      the replay moves on.  No upsert, no dedupe.
    - **Scoped artifact:** Any stale artifact is deleted before export and the
      fresh one is deleted after import, on every exit path.
    - **Drift-tolerant:** A table the target lacks is created.  A table the
      target has gains whatever columns the source defines and it lacks, so
      rows from an evolved shard land on an un-evolved one.  Indexes, views
      and triggers the target already has (by name) are left alone.
    - **Parameters, never literals:** Row values travel as bound parameters;
      table and column names read from the source catalog are quoted.
    - **Lossless values:** BLOB cells are written as ``{"blob": "<base64>"}``
      and come back as bytes, never as text.

Architecture:
    ::

        migrate_shard(source, target, path)
          │
          ├─ snapshot_artifact(path)        delete stale file
          │    ├─ export_shard(source)      tables → rows → objects → path
          │    └─ import_snapshot(target)   read all, then replay
          └─ (exit)                         delete file

Artifact format (one JSON object per line)::

    {"kind": "table", "table": "posts", "sql": "CREATE TABLE IF NOT EXISTS ...",
     "columns": [["id", "INTEGER"], ["userId", "INTEGER"], ...]}
    {"kind": "row", "table": "posts", "sql": "INSERT INTO \\"posts\\" ...",
     "params": [70, 7, "Post content for user 7", null], "key": {"id": 70}}
    {"kind": "index", "table": "posts", "name": "posts_by_user",
     "sql": "CREATE INDEX posts_by_user ON posts (userId)"}

Rows of ordinary tables are exported in rowid order; rows of ``WITHOUT
ROWID`` tables in primary-key order.  Triggers are replayed after the rows,
so they do not fire for migrated data.

Guardrails:
    ❌ DON'T: Start importing before the export has finished writing
    ✅ DO: Read the whole artifact, then replay it

    ❌ DON'T: Abort the replay on the first duplicate key
    ✅ DO: Record a UnitFailure per row and keep going

Tags:
    migration, snapshot, dump-and-load, shard-sim
"""

from __future__ import annotations

import base64
import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import Base64Bytes, BaseModel, ConfigDict, Field, ValidationError

from shardsim.core.connection import shard_connection
from shardsim.core.errors import ArtifactIOFailure, ShardSimError, translate_error
from shardsim.core.logging import get_logger
from shardsim.core.protocols import Connection
from shardsim.core.registry import ShardDescriptor
from shardsim.core.schema_loader import (
    get_schema_objects,
    get_table_columns,
    get_table_list,
    get_table_schema,
    quote_identifier,
    schema_object_exists,
)
from shardsim.core.timing import log_step
from shardsim.ops.responses import ImportResult, MigrationResult, UnitFailure
from shardsim.ops.result import OperationResult, error_code, start_timer

logger = get_logger(__name__)

DEFAULT_ARTIFACT = Path("insta1_dump.jsonl")

_CREATE_TABLE = re.compile(r"^\s*CREATE\s+TABLE\s+(IF\s+NOT\s+EXISTS\s+)?", re.IGNORECASE)
_WITHOUT_ROWID = re.compile(r"\bWITHOUT\s+ROWID\s*$", re.IGNORECASE)


# ── Snapshot model ───────────────────────────────────────────────────────


class BlobValue(BaseModel):
    """A BLOB cell.  Serialised as base64, validated back to raw bytes."""

    model_config = ConfigDict(frozen=True)

    blob: Base64Bytes

    @classmethod
    def of(cls, raw: bytes) -> BlobValue:
        return cls(blob=base64.b64encode(raw))


SqlValue = int | float | str | BlobValue | None


def _to_snapshot_value(value: Any) -> Any:
    if isinstance(value, bytes | bytearray | memoryview):
        return BlobValue.of(bytes(value))
    return value


def _to_sql_value(value: SqlValue) -> Any:
    if isinstance(value, BlobValue):
        return value.blob
    return value


class SnapshotStatement(BaseModel):
    """One line of a snapshot artifact."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["table", "row", "index", "view", "trigger"] = Field(
        description="Table definition, data row, or another schema object"
    )
    table: str = Field(description="Table the statement targets")
    name: str = Field(default="", description="Object name, index/view/trigger only")
    sql: str = Field(description="Statement text, with ? placeholders for rows")
    columns: list[tuple[str, str]] = Field(
        default_factory=list,
        description="(name, declared type) per column, table statements only",
    )
    params: list[SqlValue] = Field(
        default_factory=list,
        description="Bound values, row statements only",
    )
    key: dict[str, SqlValue] = Field(
        default_factory=dict,
        description="Primary-key column values of the row, for error reporting",
    )

    @property
    def unit(self) -> str:
        """Unit-of-work label used in failure reports (``row:users``)."""
        return f"{self.kind}:{self.name or self.table}"

    def bound_params(self) -> tuple[Any, ...]:
        return tuple(_to_sql_value(v) for v in self.params)

    def key_for_logs(self) -> dict[str, Any]:
        return self.model_dump(mode="json", include={"key"})["key"]


@dataclass(frozen=True, slots=True)
class Snapshot:
    """A shard exported to an artifact.

    The statements live in the artifact file; :meth:`statements` reads them
    back in order.
    """

    source: str
    source_index: int
    path: Path
    statement_count: int
    tables: list[str] = field(default_factory=list)
    exported_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return self.statement_count

    def statements(self) -> list[SnapshotStatement]:
        """Parse the artifact.

        Raises
        ------
        ArtifactIOFailure
            If the file is missing, unreadable or not a valid snapshot.
        """
        try:
            with self.path.open(encoding="utf-8") as fh:
                return [
                    SnapshotStatement.model_validate_json(line)
                    for line in fh
                    if line.strip()
                ]
        except OSError as exc:
            raise ArtifactIOFailure(
                f"Cannot read snapshot {self.path}: {exc}", cause=exc
            ).with_context(artifact=str(self.path)) from exc
        except ValidationError as exc:
            raise ArtifactIOFailure(
                f"Corrupt snapshot {self.path}: {exc.error_count()} invalid field(s)",
                cause=exc,
            ).with_context(artifact=str(self.path)) from exc


# ── Artifact lifecycle ───────────────────────────────────────────────────


def remove_artifact(path: Path) -> bool:
    """Delete the artifact if it exists. Returns whether a file was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ArtifactIOFailure(
            f"Cannot delete snapshot {path}: {exc}", cause=exc
        ).with_context(artifact=str(path)) from exc
    logger.debug("artifact.removed", artifact=str(path))
    return True


@contextmanager
def snapshot_artifact(path: Path | str) -> Iterator[Path]:
    """Scope an artifact path: stale copy removed on entry, file removed on exit."""
    artifact = Path(path)
    remove_artifact(artifact)
    try:
        yield artifact
    finally:
        try:
            remove_artifact(artifact)
        except ArtifactIOFailure as exc:
            logger.error("artifact.cleanup_failed", **exc.to_dict())


# ── Export ───────────────────────────────────────────────────────────────


def _create_if_absent(ddl: str) -> str:
    # sqlite_master stores DDL without IF NOT EXISTS
    return _CREATE_TABLE.sub("CREATE TABLE IF NOT EXISTS ", ddl, count=1)


def _dump_shard(conn: Connection) -> list[SnapshotStatement]:
    tables = get_table_list(conn)
    definitions: list[SnapshotStatement] = []
    rows: list[SnapshotStatement] = []

    for table in tables:
        ddl = get_table_schema(conn, table)
        columns = get_table_columns(conn, table)
        definitions.append(
            SnapshotStatement(
                kind="table",
                table=table,
                sql=_create_if_absent(ddl),
                columns=[(c.name, c.type) for c in columns],
            )
        )

        names = [c.name for c in columns]
        key_positions = [
            (i, c.name) for i, c in sorted(enumerate(columns), key=lambda ic: ic[1].pk) if c.pk
        ]
        column_list = ", ".join(quote_identifier(n) for n in names)
        insert_sql = (
            f"INSERT INTO {quote_identifier(table)} ({column_list}) "
            f"VALUES ({', '.join('?' for _ in names)})"
        )
        if _WITHOUT_ROWID.search(ddl):
            order_by = ", ".join(quote_identifier(name) for _, name in key_positions)
        else:
            order_by = "rowid"
        conn.execute(f"SELECT {column_list} FROM {quote_identifier(table)} ORDER BY {order_by}")
        for record in conn.fetchall():
            values = [_to_snapshot_value(v) for v in record]
            rows.append(
                SnapshotStatement(
                    kind="row",
                    table=table,
                    sql=insert_sql,
                    params=values,
                    key={name: values[i] for i, name in key_positions},
                )
            )

    objects = [
        SnapshotStatement(kind=obj.type, table=obj.table, name=obj.name, sql=obj.sql)
        for obj in get_schema_objects(conn)
    ]
    return definitions + rows + objects


def export_shard(source: ShardDescriptor, artifact_path: Path | str) -> Snapshot:
    """Write every table definition, row and schema object of ``source`` to ``artifact_path``.

    Table definitions come first, then rows table by table, then indexes,
    views and triggers.  An existing file at ``artifact_path`` is overwritten.

    Raises
    ------
    ShardSimError
        ``ConnectionFailure`` / ``DatabaseError`` reading the shard, or
        ``ArtifactIOFailure`` when a value cannot be snapshotted or the file
        cannot be written.
    """
    path = Path(artifact_path)

    try:
        with shard_connection(source) as conn:
            statements = _dump_shard(conn)
    except ValidationError as exc:
        raise ArtifactIOFailure(
            f"Cannot snapshot {source.name}: {exc.error_count()} unsupported value(s)",
            cause=exc,
        ).with_context(artifact=str(path), shard=source.name, shard_index=source.index) from exc

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            for statement in statements:
                fh.write(statement.model_dump_json())
                fh.write("\n")
    except OSError as exc:
        raise ArtifactIOFailure(
            f"Cannot write snapshot {path}: {exc}", cause=exc
        ).with_context(artifact=str(path), shard=source.name, shard_index=source.index) from exc

    tables = [s.table for s in statements if s.kind == "table"]
    row_count = sum(1 for s in statements if s.kind == "row")
    logger.info(
        "export.completed",
        shard=source.name,
        artifact=str(path),
        tables=len(tables),
        rows=row_count,
        objects=len(statements) - len(tables) - row_count,
    )
    return Snapshot(
        source=source.name,
        source_index=source.index,
        path=path,
        statement_count=len(statements),
        tables=tables,
    )


# ── Import ───────────────────────────────────────────────────────────────


@dataclass
class _Replay:
    tables_created: list[str] = field(default_factory=list)
    columns_added: list[str] = field(default_factory=list)
    objects_created: list[str] = field(default_factory=list)
    rows_applied: int = 0
    failed: list[UnitFailure] = field(default_factory=list)

    def record(self, unit: str, exc: ShardSimError) -> None:
        self.failed.append(
            UnitFailure(
                unit=unit,
                code=error_code(exc),
                message=exc.message,
                details=exc.context.to_dict(),
            )
        )


def _apply_table(conn: Connection, statement: SnapshotStatement, replay: _Replay) -> None:
    existing = {c.name for c in get_table_columns(conn, statement.table)}

    if not existing:
        conn.execute(statement.sql)
        conn.commit()
        replay.tables_created.append(statement.table)
        return

    for name, declared_type in statement.columns:
        if name in existing:
            continue
        ddl = (
            f"ALTER TABLE {quote_identifier(statement.table)} "
            f"ADD COLUMN {quote_identifier(name)} {declared_type}"
        ).rstrip()
        conn.execute(ddl)
        conn.commit()
        replay.columns_added.append(f"{statement.table}.{name}")


def _apply_row(conn: Connection, statement: SnapshotStatement) -> None:
    conn.execute(statement.sql, statement.bound_params())
    conn.commit()


def _apply_object(conn: Connection, statement: SnapshotStatement, replay: _Replay) -> None:
    if schema_object_exists(conn, statement.kind, statement.name):
        return
    conn.execute(statement.sql)
    conn.commit()
    replay.objects_created.append(statement.name)


def import_snapshot(
    snapshot: Snapshot,
    target: ShardDescriptor,
) -> OperationResult[ImportResult]:
    """Replay a snapshot against ``target``.

    Every statement is its own unit of work.  A failing statement is logged
    and recorded, and the replay continues with the next one.  The result
    fails with ``UNIQUE_KEY_CONFLICT`` when any row collided with an existing
    key, or with the first failure's code otherwise.
    """
    timer = start_timer()

    try:
        statements = snapshot.statements()
    except ArtifactIOFailure as exc:
        exc.with_context(stage="migrate", shard=target.name, shard_index=target.index)
        logger.error("import.failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    replay = _Replay()
    try:
        with shard_connection(target) as conn:
            for statement in statements:
                try:
                    if statement.kind == "table":
                        _apply_table(conn, statement, replay)
                    elif statement.kind == "row":
                        _apply_row(conn, statement)
                        replay.rows_applied += 1
                    else:
                        _apply_object(conn, statement, replay)
                except sqlite3.Error as exc:
                    error = translate_error(exc).with_context(
                        shard=target.name,
                        shard_index=target.index,
                        table=statement.table,
                        stage="migrate",
                        **({"key": statement.key_for_logs()} if statement.key else {}),
                    )
                    logger.warning(f"import.{statement.kind}_failed", **error.to_dict())
                    replay.record(statement.unit, error)
    except ShardSimError as exc:
        exc.with_context(stage="migrate")
        logger.error("import.failed", **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    result = ImportResult(
        target=target.name,
        target_index=target.index,
        statements=len(statements),
        tables_created=replay.tables_created,
        columns_added=replay.columns_added,
        objects_created=replay.objects_created,
        rows_applied=replay.rows_applied,
        failed=replay.failed,
    )
    logger.info(
        "import.completed",
        shard=target.name,
        rows_applied=replay.rows_applied,
        failures=len(replay.failed),
    )

    if replay.failed:
        codes = {f.code for f in replay.failed}
        code = "UNIQUE_KEY_CONFLICT" if "UNIQUE_KEY_CONFLICT" in codes else replay.failed[0].code
        return OperationResult.fail(
            code,
            f"{len(replay.failed)} of {len(statements)} statements failed on {target.name}",
            data=result,
            details={"shard": target.name, "failures": len(replay.failed)},
            elapsed_ms=timer.elapsed_ms,
        )
    return OperationResult.ok(result, elapsed_ms=timer.elapsed_ms)


# ── Migration step ───────────────────────────────────────────────────────


def migrate_shard(
    source: ShardDescriptor,
    target: ShardDescriptor,
    artifact_path: Path | str = DEFAULT_ARTIFACT,
) -> OperationResult[MigrationResult]:
    """Copy ``source`` onto ``target`` through a scoped snapshot artifact."""
    timer = start_timer()
    artifact = str(artifact_path)
    exported = 0
    imported: OperationResult[ImportResult] | None = None

    try:
        with snapshot_artifact(artifact_path) as path:
            with log_step("migrate.export", shard=source.name, artifact=artifact) as step:
                snapshot = export_shard(source, path)
                exported = len(snapshot)
                step.add_metric("statements", exported)

            with log_step("migrate.import", shard=target.name, artifact=artifact) as step:
                imported = import_snapshot(snapshot, target)
                step.add_metric("success", imported.success)
    except ShardSimError as exc:
        exc.with_context(stage="migrate", artifact=artifact)
        logger.error("migrate.failed", **exc.to_dict())
        return OperationResult.from_error(
            exc,
            data=MigrationResult(
                source=source.name,
                target=target.name,
                artifact=artifact,
                statements_exported=exported,
            ),
            elapsed_ms=timer.elapsed_ms,
        )

    result = MigrationResult(
        source=source.name,
        target=target.name,
        artifact=artifact,
        statements_exported=exported,
        imported=imported.data,
    )
    if not imported.success:
        return OperationResult.fail(
            imported.error.code,
            imported.error.message,
            data=result,
            category=imported.error.category,
            details=imported.error.details,
            elapsed_ms=timer.elapsed_ms,
        )
    return OperationResult.ok(result, elapsed_ms=timer.elapsed_ms)


__all__ = [
    "DEFAULT_ARTIFACT",
    "BlobValue",
    "Snapshot",
    "SnapshotStatement",
    "export_shard",
    "import_snapshot",
    "migrate_shard",
    "remove_artifact",
    "snapshot_artifact",
]
