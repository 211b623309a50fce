"""Tests for shardsim.core.logging and shardsim.core.timing."""

import io
import json

import pytest
from structlog.testing import capture_logs

from shardsim.core.logging import LogContext, configure_logging, get_logger
from shardsim.core.timing import TimingResult, log_stage, log_step


class TestConfigureLogging:
    def test_json_lines(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=stream)
        get_logger("shardsim.test").info("load.completed", entity_id=7)

        record = json.loads(stream.getvalue().strip())
        assert record["event"] == "load.completed"
        assert record["entity_id"] == 7
        assert record["level"] == "info"
        assert record["service"] == "shard-sim"
        assert record["logger_name"] == "shardsim.test"
        assert "timestamp" in record

    def test_level_filtering(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=stream)
        log = get_logger("shardsim.test")
        log.info("quiet")
        log.warning("loud")
        lines = stream.getvalue().strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["loud"]

    def test_custom_service(self):
        stream = io.StringIO()
        configure_logging(json_format=True, service="sim-2", stream=stream)
        get_logger().info("hello")
        assert json.loads(stream.getvalue())["service"] == "sim-2"

    def test_context_merged(self):
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream)
        with LogContext(shard="insta2", entity_id=8):
            get_logger("shardsim.test").info("inside")
        get_logger("shardsim.test").info("outside")

        inside, outside = (json.loads(line) for line in stream.getvalue().splitlines())
        assert inside["shard"] == "insta2"
        assert inside["entity_id"] == 8
        assert "shard" not in outside

    def test_console_renderer(self):
        stream = io.StringIO()
        configure_logging(json_format=False, stream=stream)
        get_logger("shardsim.test").info("provision.completed", tables=3)
        assert "provision.completed" in stream.getvalue()


class TestGetLogger:
    def test_binds_module_name(self):
        with capture_logs() as logs:
            get_logger("shardsim.ops.migrate").info("export.completed", rows=3)
        assert logs == [
            {
                "event": "export.completed",
                "log_level": "info",
                "logger_name": "shardsim.ops.migrate",
                "rows": 3,
            }
        ]

    def test_module_loggers_usable(self):
        from shardsim.core import connection, registry

        with capture_logs() as logs:
            connection.logger.info("ping")
            registry.logger.info("pong")
        assert [e["logger_name"] for e in logs] == [
            "shardsim.core.connection",
            "shardsim.core.registry",
        ]


class TestTimingResult:
    def test_duration_and_metrics(self):
        timer = TimingResult(step="x")
        timer.add_metric("rows", 3).stop()
        d = timer.to_log_dict()
        assert d["rows"] == 3
        assert d["duration_ms"] >= 0

    def test_error_dict(self):
        timer = TimingResult(step="x")
        timer.set_error(ValueError("bad"))
        d = timer.to_error_dict()
        assert d["status"] == "error"
        assert d["error_type"] == "ValueError"
        assert d["error_message"] == "bad"


class TestLogStep:
    def test_start_and_end(self):
        with capture_logs() as logs:
            with log_step("migrate.export", shard="insta1") as timer:
                timer.add_metric("statements", 5)

        events = [e["event"] for e in logs]
        assert events == ["migrate.export.start", "migrate.export.end"]
        end = logs[-1]
        assert end["statements"] == 5
        assert end["shard"] == "insta1"
        assert "duration_ms" in end

    def test_error_logged_and_reraised(self):
        with capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with log_step("migrate.import"):
                    raise RuntimeError("boom")

        assert [e["event"] for e in logs] == ["migrate.import.start", "migrate.import.error"]
        assert logs[-1]["error_message"] == "boom"
        assert logs[-1]["log_level"] == "error"

    def test_stage_prefix(self):
        with capture_logs() as logs:
            with log_stage("provision", shards=3):
                pass
        assert [e["event"] for e in logs] == ["stage.provision.start", "stage.provision.end"]
        assert logs[-1]["log_level"] == "info"
