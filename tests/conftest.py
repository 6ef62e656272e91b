"""Pytest configuration and shared fixtures."""

import logging
import os
import shutil
import tempfile

import pytest
import yaml

from tablevault.config.settings import BackupSettings, TableConfig, TableVaultConfig
from tablevault.store import InMemoryStore


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep TABLEVAULT_* variables from the developer's shell out of tests."""
    for name in ("TABLEVAULT_CONFIG", "TABLEVAULT_DATABASE_URL", "TABLEVAULT_BACKUP_DIR", "TABLEVAULT_MAX_BACKUPS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers installed by setup_logging so they do not outlive a test."""
    yield
    from tablevault.utils import logging as tablevault_logging

    root = logging.getLogger()
    while tablevault_logging._installed_handlers:
        handler = tablevault_logging._installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def sample_rows():
    """Sample table content resembling the bot's data."""
    return {
        "bot_settings": [
            {"id": 1, "key": "model", "value": "default"},
            {"id": 2, "key": "temperature", "value": "0.7"},
        ],
        "conversation_histories": [
            {"id": 1, "user_id": "u1", "message": "hello", "created_at": "2024-05-01T10:00:00"},
            {"id": 2, "user_id": "u1", "message": "こんにちは", "created_at": "2024-05-01T10:01:00"},
            {"id": 3, "user_id": "u2", "message": "hi", "created_at": "2024-05-01T10:02:00"},
        ],
        "api_usage": [{"id": 1, "endpoint": "generate", "count": 42}],
    }


@pytest.fixture
def memory_store(sample_rows):
    """In-memory store seeded with the sample rows."""
    return InMemoryStore(sample_rows)


@pytest.fixture
def backup_settings(temp_directory):
    """Backup settings for the sample tables, writing into the temp directory."""
    return BackupSettings(
        directory=os.path.join(temp_directory, "backups"),
        max_backup_count=10,
        tables=[
            TableConfig("bot_settings", "id", critical=True),
            TableConfig("conversation_histories", "id", critical=True),
            TableConfig("api_usage", "id"),
        ],
    )


@pytest.fixture
def tablevault_config(backup_settings):
    """Complete runtime configuration using the in-memory store."""
    config = TableVaultConfig(backup=backup_settings)
    config.store.url = "memory://"
    return config


@pytest.fixture
def sample_config_dict(temp_directory):
    """Sample tablevault.yml content."""
    return {
        "tablevault": {"version": "1.0.0"},
        "store": {"url": f"sqlite:///{os.path.join(temp_directory, 'bot.db')}", "page_size": 2},
        "backup": {
            "directory": os.path.join(temp_directory, "backups"),
            "max_backup_count": 3,
            "format_version": "1.0",
            "batch_size": 2,
            "schedule": "0 3 * * *",
            "tables": [
                {"name": "bot_settings", "conflict_key": "id", "critical": True},
                {"name": "api_usage", "conflict_key": "id"},
            ],
        },
        "logging": {"events_file": os.path.join(temp_directory, "events.jsonl")},
    }


@pytest.fixture
def config_file(temp_directory, sample_config_dict):
    """Write the sample configuration to tablevault.yml."""
    path = os.path.join(temp_directory, "tablevault.yml")
    with open(path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return path


@pytest.fixture
def sqlite_database(temp_directory):
    """SQLite database file with the sample tables."""
    from sqlalchemy import create_engine, text

    path = os.path.join(temp_directory, "bot.db")
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE bot_settings (id INTEGER PRIMARY KEY, key TEXT NOT NULL, value TEXT)"))
        conn.execute(
            text("CREATE TABLE api_usage (id INTEGER PRIMARY KEY, endpoint TEXT, count INTEGER, used_at DATETIME)")
        )
        conn.execute(
            text("INSERT INTO bot_settings (id, key, value) VALUES (1, 'model', 'default'), (2, 'language', 'en')")
        )
        conn.execute(
            text(
                "INSERT INTO api_usage (id, endpoint, count, used_at) VALUES "
                "(1, 'generate', 10, '2024-05-01 10:00:00'), "
                "(2, 'search', 3, '2024-05-01 11:00:00'), "
                "(3, 'generate', 7, '2024-05-02 09:30:00')"
            )
        )
    engine.dispose()
    return f"sqlite:///{path}"
