"""Typed configuration objects passed to backup components."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tablevault.utils.errors import ConfigurationError

DEFAULT_FORMAT_VERSION = "1.0"


@dataclass
class TableConfig:
    """A table covered by backups and the column its rows are upserted on."""

    name: str
    conflict_key: str
    critical: bool = False


DEFAULT_TABLES = [
    TableConfig("conversation_histories", "id", critical=True),
    TableConfig("api_usage", "id"),
    TableConfig("bot_settings", "id", critical=True),
    TableConfig("api_logs", "id"),
    TableConfig("system_logs", "id"),
    TableConfig("env_variables", "id", critical=True),
    TableConfig("bot_status", "id"),
]


@dataclass
class BackupSettings:
    """Backup behaviour: where snapshots live, which tables, how many to keep."""

    directory: str = "backups"
    max_backup_count: int = 10
    format_version: str = DEFAULT_FORMAT_VERSION
    batch_size: int = 500
    schedule: str = "0 3 * * *"
    tables: List[TableConfig] = field(default_factory=lambda: list(DEFAULT_TABLES))

    @property
    def full_tables(self) -> List[str]:
        return [table.name for table in self.tables]

    @property
    def critical_tables(self) -> List[str]:
        return [table.name for table in self.tables if table.critical]

    def get_table(self, name: str) -> Optional[TableConfig]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def conflict_key(self, name: str) -> str:
        """Return the declared upsert key for ``name``.

        Raises:
            ConfigurationError: If the table is not configured
        """
        table = self.get_table(name)
        if table is None:
            raise ConfigurationError(
                f"No conflict key configured for table '{name}'",
                suggestions=[f"Add '{name}' with a conflict_key under backup.tables"],
            )
        return table.conflict_key


@dataclass
class StoreSettings:
    """Connection settings for the relational store."""

    url: str = "sqlite:///tablevault.db"
    page_size: int = 1000


@dataclass
class TableVaultConfig:
    """Complete runtime configuration."""

    store: StoreSettings = field(default_factory=StoreSettings)
    backup: BackupSettings = field(default_factory=BackupSettings)
    events_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TableVaultConfig":
        """Build configuration from a parsed (and validated) YAML mapping."""
        data = data or {}
        store_data = data.get("store") or {}
        backup_data = dict(data.get("backup") or {})
        logging_data = data.get("logging") or {}

        tables = backup_data.pop("tables", None)
        backup = BackupSettings(**backup_data)
        if tables is not None:
            backup.tables = [
                TableConfig(
                    name=table["name"],
                    conflict_key=table["conflict_key"],
                    critical=table.get("critical", False),
                )
                for table in tables
            ]

        return cls(
            store=StoreSettings(**store_data),
            backup=backup,
            events_file=logging_data.get("events_file"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": {"url": self.store.url, "page_size": self.store.page_size},
            "backup": {
                "directory": self.backup.directory,
                "max_backup_count": self.backup.max_backup_count,
                "format_version": self.backup.format_version,
                "batch_size": self.backup.batch_size,
                "schedule": self.backup.schedule,
                "tables": [
                    {"name": t.name, "conflict_key": t.conflict_key, "critical": t.critical}
                    for t in self.backup.tables
                ],
            },
            "logging": {"events_file": self.events_file},
        }
