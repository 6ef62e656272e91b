"""Logging configuration and structured backup events for TableVault."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

EVENT_LOGGER_NAME = "tablevault.events"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger(__name__)

_installed_handlers: List[logging.Handler] = []


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Setup logging configuration for the CLI.

    Args:
        verbose: Enable verbose/debug logging
        log_file: Optional log file path
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level if verbose else logging.WARNING)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Repeated CLI invocations in one process must not stack handlers
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


EventSink = Callable[[Dict[str, Any]], None]


class JsonlEventSink:
    """Appends events to a JSON-lines file."""

    def __init__(self, path: str):
        self.path = path

    def __call__(self, event: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")


class EventLogger:
    """Emits structured ``{level, category, message, details}`` events.

    Events go to the ``tablevault.events`` logger and to every registered sink.
    Sinks are fire-and-forget: a failing sink is reported at debug level and
    never interrupts the backup operation that produced the event.
    """

    def __init__(self, category: str = "database", sinks: Optional[List[EventSink]] = None):
        self.category = category
        self.sinks: List[EventSink] = list(sinks or [])
        self._logger = logging.getLogger(EVENT_LOGGER_NAME)

    def add_sink(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def emit(self, level: str, message: str, **details: Any) -> Dict[str, Any]:
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "category": self.category,
            "message": message,
            "details": details,
        }

        if details:
            self._logger.log(_LEVELS.get(level, logging.INFO), "%s %s", message, _format_details(details))
        else:
            self._logger.log(_LEVELS.get(level, logging.INFO), "%s", message)

        for sink in self.sinks:
            try:
                sink(event)
            except Exception as e:
                logger.debug("Event sink %r failed: %s", sink, e)

        return event

    def debug(self, message: str, **details: Any) -> Dict[str, Any]:
        return self.emit("debug", message, **details)

    def info(self, message: str, **details: Any) -> Dict[str, Any]:
        return self.emit("info", message, **details)

    def warn(self, message: str, **details: Any) -> Dict[str, Any]:
        return self.emit("warn", message, **details)

    def error(self, message: str, **details: Any) -> Dict[str, Any]:
        return self.emit("error", message, **details)


def _format_details(details: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in details.items())
