"""Tests for structlog configuration."""

import io
import json

import pytest

from strata.core.logging import LogContext, configure_logging, get_logger


@pytest.fixture()
def log_stream():
    stream = io.StringIO()
    yield stream
    configure_logging(level="WARNING", json_format=False)


def read_events(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfiguredLogger:

    def test_warning_carries_logger_name(self, log_stream):
        configure_logging(level="INFO", json_format=True, stream=log_stream)
        log = get_logger("strata.core.bootstrap")

        log.warning("bootstrap.database_missing", database="app_test")

        [event] = read_events(log_stream)
        assert event["event"] == "bootstrap.database_missing"
        assert event["logger"] == "strata.core.bootstrap"
        assert event["log.level"] == "warning"
        assert event["service.name"] == "strata"
        assert event["database"] == "app_test"
        assert "@timestamp" in event

    def test_error_and_exception(self, log_stream):
        configure_logging(level="INFO", json_format=True, stream=log_stream)
        log = get_logger("strata.core.models.loader")

        log.error("models.load_failed", model="broken")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log.exception("op_failed", op="migrate")

        events = read_events(log_stream)
        assert [e["event"] for e in events] == ["models.load_failed", "op_failed"]
        assert events[1]["log.level"] == "error"

    def test_level_filters_lower_events(self, log_stream):
        configure_logging(level="WARNING", json_format=True, stream=log_stream)
        log = get_logger("strata.tests.filtering")

        log.info("migration.applied")
        log.warning("migrations.revert_all")

        assert [e["event"] for e in read_events(log_stream)] == ["migrations.revert_all"]

    def test_console_renderer(self, log_stream):
        configure_logging(level="INFO", json_format=False, stream=log_stream)
        get_logger("strata.tests.console").warning("lifecycle.eager_sync_skipped")
        assert "lifecycle.eager_sync_skipped" in log_stream.getvalue()

    def test_log_context_binds_fields(self, log_stream):
        configure_logging(level="INFO", json_format=True, stream=log_stream)
        log = get_logger("strata.core.migrations.runner")

        with LogContext(migration="001_users"):
            log.info("migration.applying")
        log.info("migrations.run_complete")

        first, second = read_events(log_stream)
        assert first["migration"] == "001_users"
        assert "migration" not in second
