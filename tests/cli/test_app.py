"""
Tests for the shardsim CLI.
"""

from __future__ import annotations

import json
import uuid

import pytest
from typer.testing import CliRunner

from shardsim import __version__
from shardsim.cli.app import app

runner = CliRunner()


@pytest.fixture()
def shard_args():
    prefix = uuid.uuid4().hex[:8]
    return [arg for i in range(3) for arg in ("--shard", f"memory://cli{prefix}_{i}")]


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "inspect" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"shard-sim {__version__}" in result.output


class TestRun:
    def test_summary_table(self, shard_args, tmp_path):
        artifact = tmp_path / "dump.jsonl"
        result = runner.invoke(
            app,
            ["run", *shard_args, "--artifact", str(artifact), "--log-level", "ERROR"],
        )
        assert result.exit_code == 0
        for stage in ("provision", "evolve", "load", "migrate"):
            assert stage in result.output
        assert not artifact.exists()

    def test_json_output(self, shard_args, tmp_path):
        result = runner.invoke(
            app,
            [
                "run",
                *shard_args,
                "--entities",
                "6",
                "--artifact",
                str(tmp_path / "dump.jsonl"),
                "--log-level",
                "ERROR",
                "--json",
            ],
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["simulation"]["success"] is True
        users = {
            shard["shard"]: next(t["rows"] for t in shard["tables"] if t["table"] == "users")
            for shard in payload["shards"]
        }
        assert sorted(users.values()) == [0, 3, 6]

    def test_exit_zero_on_unit_failures(self, tmp_path):
        bad = tmp_path / "dir"
        bad.mkdir()
        args = ["--shard", str(tmp_path / "a.db"), "--shard", str(tmp_path / "b.db"),
                "--shard", str(bad)]
        result = runner.invoke(
            app,
            ["run", *args, "--artifact", str(tmp_path / "d.jsonl"), "--log-level", "CRITICAL"],
        )
        assert result.exit_code == 0

    def test_too_few_shards(self):
        result = runner.invoke(app, ["run", "--shard", "memory://lonely", "--log-level", "ERROR"])
        assert result.exit_code == 1

    def test_malformed_shard_endpoint(self):
        good = f"memory://cli{uuid.uuid4().hex[:8]}"
        result = runner.invoke(
            app, ["run", "--shard", good, "--shard", "memory://", "--log-level", "ERROR"]
        )
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_invalid_entity_count(self):
        result = runner.invoke(app, ["run", "--entities", "0"])
        assert result.exit_code == 1


class TestInspect:
    def test_file_shards(self, tmp_path):
        args = ["--shard", str(tmp_path / "a.db"), "--shard", str(tmp_path / "b.db")]
        runner.invoke(app, ["run", *args, "--artifact", str(tmp_path / "d.jsonl"),
                            "--log-level", "ERROR"])

        result = runner.invoke(app, ["inspect", *args, "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [s["shard"] for s in payload] == ["a", "b"]
        b_users = next(t for t in payload[1]["tables"] if t["table"] == "users")
        assert b_users["rows"] == 20
