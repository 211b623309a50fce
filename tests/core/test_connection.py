"""Tests for shardsim.core.connection and the SQLite adapter."""

import sqlite3
import uuid

import pytest

from shardsim.core.connection import (
    _parse_url,
    create_connection,
    display_name,
    pin_endpoint,
    shard_connection,
    validate_endpoint,
)
from shardsim.core.errors import ConfigError, ConnectionFailure, SchemaConflict
from shardsim.core.protocols import Connection
from shardsim.core.registry import ShardDescriptor
from shardsim.core.sqlite_conn import SqliteConnection


def _memory_url() -> str:
    return f"memory://c{uuid.uuid4().hex[:8]}"


class TestParseUrl:
    def test_memory(self):
        assert _parse_url("memory://insta1") == ("memory", "insta1")

    def test_sqlite(self):
        assert _parse_url("sqlite:///data/a.db") == ("sqlite", "data/a.db")

    def test_bare_path(self):
        assert _parse_url("./a.db") == ("file", "./a.db")

    @pytest.mark.parametrize("url", ["", ":memory:", "memory", "memory://"])
    def test_anonymous_databases_rejected(self, url):
        with pytest.raises(ConnectionFailure):
            _parse_url(url)

    @pytest.mark.parametrize("url", ["", "memory://"])
    def test_validate_endpoint_raises_config_error(self, url):
        with pytest.raises(ConfigError):
            validate_endpoint(url)

    def test_validate_endpoint_accepts_named_databases(self):
        validate_endpoint("memory://insta1")
        validate_endpoint("sqlite:///data/a.db")


class TestDisplayName:
    def test_memory_name(self):
        assert display_name("memory://insta2") == "insta2"

    def test_file_stem(self):
        assert display_name("sqlite:///tmp/shards/insta3.db") == "insta3"

    def test_invalid_url_falls_back(self):
        assert display_name("") == "<unnamed>"


class TestCreateConnection:
    def test_adapter_satisfies_protocol(self):
        conn, _info = create_connection(_memory_url())
        try:
            assert isinstance(conn, Connection)
            assert isinstance(conn, SqliteConnection)
        finally:
            conn.close()

    def test_memory_info(self):
        conn, info = create_connection("memory://info_test")
        conn.close()
        assert not info.persistent
        assert info.resolved_path is None

    def test_file_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "shard.db"
        conn, info = create_connection(f"sqlite:///{target}")
        conn.close()
        assert info.persistent
        assert info.resolved_path == str(target.resolve())
        assert target.exists()

    def test_directory_endpoint_fails(self, tmp_path):
        with pytest.raises(ConnectionFailure):
            create_connection(str(tmp_path))


class TestNamedMemory:
    def test_shared_while_anchor_open(self):
        url = _memory_url()
        anchor = pin_endpoint(url)
        try:
            writer, _ = create_connection(url)
            writer.execute("CREATE TABLE t (id INTEGER)")
            writer.execute("INSERT INTO t VALUES (?)", (1,))
            writer.commit()
            writer.close()

            reader, _ = create_connection(url)
            reader.execute("SELECT id FROM t")
            assert [tuple(r) for r in reader.fetchall()] == [(1,)]
            reader.close()
        finally:
            anchor.close()

    def test_gone_when_last_connection_closes(self):
        url = _memory_url()
        conn, _ = create_connection(url)
        conn.execute("CREATE TABLE t (id INTEGER)")
        conn.commit()
        conn.close()

        conn, _ = create_connection(url)
        with pytest.raises(sqlite3.OperationalError):
            conn.execute("SELECT * FROM t")
        conn.close()

    def test_no_anchor_for_files(self, tmp_path):
        assert pin_endpoint(str(tmp_path / "a.db")) is None


class TestShardConnection:
    def test_translates_errors_with_shard_context(self, tmp_path):
        shard = ShardDescriptor(index=1, endpoint=str(tmp_path / "insta2.db"))
        with pytest.raises(SchemaConflict) as info:
            with shard_connection(shard) as conn:
                conn.execute("SELECT * FROM missing")
        assert info.value.context.shard == "insta2"
        assert info.value.context.shard_index == 1

    def test_open_failure_has_shard_context(self, tmp_path):
        shard = ShardDescriptor(index=0, endpoint=str(tmp_path))
        with pytest.raises(ConnectionFailure) as info:
            with shard_connection(shard):
                pass
        assert info.value.context.shard_index == 0

    def test_closes_on_exit(self, tmp_path):
        shard = ShardDescriptor(index=0, endpoint=str(tmp_path / "a.db"))
        with shard_connection(shard) as conn:
            conn.execute("SELECT 1")
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
