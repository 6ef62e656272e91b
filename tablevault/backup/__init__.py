"""Backup and restore of relational store tables."""

from .manager import BackupManager
from .models import RestoreOptions, RestoreReport, Snapshot, SnapshotInfo, ValidationResult
from .recovery import RecoveryManager
from .retention import RetentionManager
from .scheduler import BackupScheduler
from .storage import SnapshotStorage
from .validator import SnapshotValidator

__all__ = [
    "BackupManager",
    "BackupScheduler",
    "RecoveryManager",
    "RestoreOptions",
    "RestoreReport",
    "RetentionManager",
    "Snapshot",
    "SnapshotInfo",
    "SnapshotStorage",
    "SnapshotValidator",
    "ValidationResult",
]
