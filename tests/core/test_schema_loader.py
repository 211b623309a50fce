"""Tests for shardsim.core.schema_loader."""

import pytest

from shardsim.core.schema_loader import (
    SCHEMA_DIR,
    _split_sql,
    apply_all_schemas,
    SchemaObject,
    get_schema_files,
    get_schema_objects,
    get_table_columns,
    get_table_list,
    get_table_schema,
    quote_identifier,
    schema_object_exists,
    schema_statements,
)
from shardsim.core.sqlite_conn import SqliteConnection


@pytest.fixture()
def conn():
    c = SqliteConnection(":memory:")
    yield c
    c.close()


class TestSplitSql:
    def test_skips_comments_and_blank_lines(self):
        sql = "-- header\n\nCREATE TABLE a (id INTEGER);\n-- note\nCREATE TABLE b (id INTEGER);\n"
        assert _split_sql(sql) == ["CREATE TABLE a (id INTEGER);", "CREATE TABLE b (id INTEGER);"]

    def test_multiline_statement(self):
        sql = "CREATE TABLE a (\n  id INTEGER\n);"
        assert _split_sql(sql) == ["CREATE TABLE a (\n  id INTEGER\n);"]

    def test_unterminated_tail(self):
        assert _split_sql("SELECT 1") == ["SELECT 1"]


class TestSchemaFiles:
    def test_packaged_schema_present(self):
        names = [p.name for p in get_schema_files()]
        assert names == ["00_shard.sql"]
        assert all(p.parent == SCHEMA_DIR for p in get_schema_files())

    def test_missing_directory(self, tmp_path):
        assert get_schema_files(tmp_path / "nope") == []

    def test_statements_are_idempotent_creates(self):
        statements = schema_statements()
        assert len(statements) == 3
        assert all(s.startswith("CREATE TABLE IF NOT EXISTS") for s in statements)


class TestApplyAndIntrospect:
    def test_apply_creates_tables_in_order(self, conn):
        assert apply_all_schemas(conn) == ["00_shard.sql"]
        assert get_table_list(conn) == ["users", "posts", "profile"]

    def test_apply_twice(self, conn):
        apply_all_schemas(conn)
        apply_all_schemas(conn)
        assert get_table_list(conn) == ["users", "posts", "profile"]

    def test_columns(self, conn):
        apply_all_schemas(conn)
        columns = get_table_columns(conn, "posts")
        assert [(c.name, c.type) for c in columns] == [
            ("id", "INTEGER"),
            ("userId", "INTEGER"),
            ("content", "TEXT"),
        ]
        assert [c.pk for c in columns] == [1, 0, 0]

    def test_columns_of_missing_table(self, conn):
        assert get_table_columns(conn, "nope") == []

    def test_table_schema(self, conn):
        apply_all_schemas(conn)
        assert "userId INTEGER PRIMARY KEY" in get_table_schema(conn, "profile")

    def test_table_schema_missing(self, conn):
        with pytest.raises(ValueError):
            get_table_schema(conn, "nope")

    def test_custom_schema_dir(self, conn, tmp_path):
        (tmp_path / "01_extra.sql").write_text("CREATE TABLE extra (id INTEGER);")
        assert apply_all_schemas(conn, tmp_path) == ["01_extra.sql"]
        assert get_table_list(conn) == ["extra"]


class TestSchemaObjects:
    def test_packaged_schema_has_none(self, conn):
        apply_all_schemas(conn)
        assert get_schema_objects(conn) == []

    def test_indexes_and_views_in_creation_order(self, conn):
        apply_all_schemas(conn)
        conn.execute("CREATE INDEX posts_by_user ON posts (userId)")
        conn.execute("CREATE VIEW bios AS SELECT bio FROM profile")
        conn.execute("CREATE TABLE keyed (k TEXT UNIQUE)")

        objects = get_schema_objects(conn)

        assert objects == [
            SchemaObject(
                "index", "posts_by_user", "posts", "CREATE INDEX posts_by_user ON posts (userId)"
            ),
            SchemaObject("view", "bios", "bios", "CREATE VIEW bios AS SELECT bio FROM profile"),
        ]

    def test_object_exists(self, conn):
        apply_all_schemas(conn)
        conn.execute("CREATE INDEX posts_by_user ON posts (userId)")
        assert schema_object_exists(conn, "index", "posts_by_user")
        assert not schema_object_exists(conn, "view", "posts_by_user")


class TestQuoteIdentifier:
    def test_plain(self):
        assert quote_identifier("postDate") == '"postDate"'

    def test_embedded_quote(self):
        assert quote_identifier('we"ird') == '"we""ird"'
