"""Configuration management for TableVault."""

from .manager import ConfigManager
from .schemas import CONFIG_SCHEMA
from .settings import BackupSettings, StoreSettings, TableConfig, TableVaultConfig

__all__ = [
    "BackupSettings",
    "CONFIG_SCHEMA",
    "ConfigManager",
    "StoreSettings",
    "TableConfig",
    "TableVaultConfig",
]
