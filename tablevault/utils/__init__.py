"""Utilities for TableVault."""

from .logging import EventLogger, JsonlEventSink, setup_logging

__all__ = ["EventLogger", "JsonlEventSink", "setup_logging"]
