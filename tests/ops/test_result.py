"""Tests for shardsim.ops.result."""

import pytest

from shardsim.core.errors import (
    ArtifactIOFailure,
    ConnectionFailure,
    ErrorCategory,
    SchemaConflict,
    ShardSimError,
    UniqueKeyConflict,
)
from shardsim.ops.result import OperationResult, error_code, start_timer


class TestErrorCode:
    @pytest.mark.parametrize(
        "error, code",
        [
            (UniqueKeyConflict("x"), "UNIQUE_KEY_CONFLICT"),
            (SchemaConflict("x"), "SCHEMA_CONFLICT"),
            (ConnectionFailure("x"), "CONNECTION_FAILURE"),
            (ArtifactIOFailure("x"), "ARTIFACT_IO_FAILURE"),
            (ShardSimError("x"), "SHARD_SIM_ERROR"),
        ],
    )
    def test_upper_snake_case(self, error, code):
        assert error_code(error) == code


class TestOperationResult:
    def test_ok(self):
        result = OperationResult.ok({"n": 1}, elapsed_ms=1.234)
        assert result.success
        assert result.error is None
        assert result.to_dict() == {"success": True, "data": {"n": 1}, "elapsed_ms": 1.23}

    def test_fail_keeps_data(self):
        result = OperationResult.fail("PARTIAL_FAILURE", "1 of 3 failed", data=[1, 2])
        assert not result.success
        assert result.data == [1, 2]
        assert result.error.code == "PARTIAL_FAILURE"

    def test_from_error(self):
        error = SchemaConflict("duplicate column name: postDate").with_context(
            shard="insta1", stage="evolve"
        )
        result = OperationResult.from_error(error)
        assert result.error.code == "SCHEMA_CONFLICT"
        assert result.error.category == ErrorCategory.DATABASE
        assert result.error.details == {"shard": "insta1", "stage": "evolve"}
        d = result.to_dict()
        assert d["error"]["category"] == "DATABASE"
        assert d["error"]["details"]["shard"] == "insta1"


class TestTimer:
    def test_elapsed_grows(self):
        timer = start_timer()
        first = timer.elapsed_ms
        assert first >= 0
        assert timer.elapsed_ms >= first
