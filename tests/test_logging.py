"""Tests for logging setup and structured events."""

import json
import logging
import os

from tablevault.utils.logging import EventLogger, JsonlEventSink, setup_logging


class TestSetupLogging:
    """Test logging configuration."""

    def test_repeated_setup_does_not_stack_handlers(self):
        """Test calling setup twice leaves one console handler."""
        root = logging.getLogger()
        before = len(root.handlers)

        setup_logging()
        setup_logging(verbose=True)

        assert len(root.handlers) <= before + 1
        assert root.level == logging.DEBUG

    def test_log_file(self, temp_directory):
        """Test messages are written to the log file."""
        path = os.path.join(temp_directory, "tablevault.log")

        setup_logging(log_file=path)
        logging.getLogger("tablevault.test").info("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(path) as f:
            assert "hello file" in f.read()


class TestEventLogger:
    """Test structured events."""

    def test_event_shape(self):
        """Test the emitted event fields."""
        events = EventLogger(category="database")

        event = events.info("Backup completed", path="/b/x.json", rows=3)

        assert event["level"] == "info"
        assert event["category"] == "database"
        assert event["message"] == "Backup completed"
        assert event["details"] == {"path": "/b/x.json", "rows": 3}
        assert "timestamp" in event

    def test_events_reach_sinks(self):
        """Test every sink receives each event."""
        received = []
        events = EventLogger(sinks=[received.append])

        events.warn("careful")
        events.error("broken", table="users")

        assert [event["level"] for event in received] == ["warn", "error"]

    def test_failing_sink_is_ignored(self):
        """Test a sink failure never propagates."""

        def broken_sink(event):
            raise OSError("disk full")

        received = []
        events = EventLogger(sinks=[broken_sink, received.append])

        events.info("still delivered")

        assert len(received) == 1

    def test_events_go_to_logging(self, caplog):
        """Test events are also logged through the standard logging tree."""
        with caplog.at_level(logging.INFO, logger="tablevault.events"):
            EventLogger().info("Restore completed", tables=2)

        assert "Restore completed tables=2" in caplog.text

    def test_jsonl_sink(self, temp_directory):
        """Test events are appended as JSON lines."""
        path = os.path.join(temp_directory, "logs", "events.jsonl")
        events = EventLogger(sinks=[JsonlEventSink(path)])

        events.info("one")
        events.debug("two", n=2)

        with open(path, encoding="utf-8") as f:
            lines = [json.loads(line) for line in f]
        assert [line["message"] for line in lines] == ["one", "two"]
        assert lines[1]["details"] == {"n": 2}
