"""Tests for ``tinyrecord.logging`` — structlog configuration and context."""

from __future__ import annotations

import io

import structlog

from tinyrecord.logging import (
    LogContext,
    SQLShortener,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from tinyrecord.model import Model


class TestConfigureLogging:
    def test_json_configuration(self):
        configure_logging(level="DEBUG", json_format=True, service="test-service")
        assert structlog.is_configured()
        assert get_logger("tinyrecord.test") is not None

    def test_console_configuration_with_stream(self):
        stream = io.StringIO()
        configure_logging(level="warning", json_format=False, add_timestamp=False, stream=stream)
        assert structlog.is_configured()


class TestContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_bind_and_unbind(self):
        bind_context(connection="reporting", table="contact")
        assert structlog.contextvars.get_contextvars() == {
            "connection": "reporting",
            "table": "contact",
        }
        unbind_context("table")
        assert structlog.contextvars.get_contextvars() == {"connection": "reporting"}

    def test_log_context_is_scoped(self):
        with LogContext(table="contact") as ctx:
            assert isinstance(ctx, LogContext)
            assert structlog.contextvars.get_contextvars()["table"] == "contact"
        assert "table" not in structlog.contextvars.get_contextvars()

    def test_nested_context_restores_outer_value(self):
        with LogContext(table="contact"):
            with LogContext(table="note", connection="reporting"):
                assert structlog.contextvars.get_contextvars() == {"table": "note", "connection": "reporting"}
            assert structlog.contextvars.get_contextvars() == {"table": "contact"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_model_writes_bind_table_and_connection(self, db):
        seen = []

        class Contact(Model):
            table = "contact"

            def before_save(self) -> bool:
                seen.append(structlog.contextvars.get_contextvars())
                return True

        Contact(db, {"name": "a"}).save()
        assert seen == [{"connection": "default", "table": "contact"}]
        assert structlog.contextvars.get_contextvars() == {}


class TestSQLShortener:
    def test_folds_whitespace(self):
        event = SQLShortener()(None, "debug", {"sql": "SELECT *\nFROM `contact`\n  WHERE id = 1"})
        assert event["sql"] == "SELECT * FROM `contact` WHERE id = 1"

    def test_caps_length(self):
        event = SQLShortener(10)(None, "debug", {"sql": "SELECT name FROM contact"})
        assert event["sql"] == "SELECT nam…"

    def test_no_cap(self):
        sql = "SELECT " + ", ".join(f"c{i}" for i in range(200))
        assert SQLShortener(0)(None, "debug", {"sql": sql})["sql"] == sql

    def test_other_events_untouched(self):
        assert SQLShortener(5)(None, "info", {"event": "model_saved", "rows": 1}) == {
            "event": "model_saved",
            "rows": 1,
        }
