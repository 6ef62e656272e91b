"""Backup management facade used by the CLI and the host application."""

import logging
import os
from typing import List, Optional

from tablevault.config.settings import TableVaultConfig
from tablevault.store import RelationalStore, create_store
from tablevault.utils.errors import SnapshotError
from tablevault.utils.logging import EventLogger, JsonlEventSink

from .builder import SnapshotBuilder
from .exporter import TableExporter
from .importer import TableImporter
from .lock import BackupLock
from .models import CRITICAL, FULL, RestoreOptions, RestoreReport, Snapshot, SnapshotInfo, ValidationResult
from .recovery import RecoveryManager
from .retention import RetentionManager
from .storage import SnapshotStorage, parse_snapshot_filename
from .validator import SnapshotValidator

logger = logging.getLogger(__name__)


class BackupManager:
    """Creates, lists, validates, restores and prunes snapshots.

    Mutating operations (create, restore, prune) hold the backup directory
    lock for their whole duration.
    """

    def __init__(
        self,
        config: Optional[TableVaultConfig] = None,
        store: Optional[RelationalStore] = None,
        events: Optional[EventLogger] = None,
        verbose: bool = False,
    ):
        """
        Initialize backup manager.

        Args:
            config: Runtime configuration (defaults when omitted)
            store: Relational store (created from ``config.store.url`` when omitted)
            events: Structured event logger
            verbose: Enable verbose output
        """
        self.config = config or TableVaultConfig()
        self.settings = self.config.backup
        self.verbose = verbose

        self.events = events or EventLogger(category="database")
        if events is None and self.config.events_file:
            self.events.add_sink(JsonlEventSink(self.config.events_file))

        self.store = store or create_store(self.config.store.url, page_size=self.config.store.page_size)

        # Initialize components
        self.storage = SnapshotStorage(self.settings.directory)
        self.exporter = TableExporter(self.store)
        self.importer = TableImporter(self.store, batch_size=self.settings.batch_size)
        self.builder = SnapshotBuilder(
            self.exporter, self.storage, format_version=self.settings.format_version, events=self.events
        )
        self.validator = SnapshotValidator(self.storage, events=self.events)
        self.retention = RetentionManager(self.storage, events=self.events)
        self.recovery = RecoveryManager(
            self.settings,
            self.storage,
            self.builder,
            self.importer,
            self.validator,
            self.retention,
            events=self.events,
        )

    def lock(self) -> BackupLock:
        return BackupLock(self.settings.directory)

    def create_full_backup(self, description: Optional[str] = None, tables: Optional[List[str]] = None) -> Snapshot:
        """
        Create a full snapshot and prune old full snapshots.

        Args:
            description: Optional description stored in the snapshot
            tables: Override the configured full table set

        Returns:
            Snapshot: The written snapshot
        """
        with self.lock():
            snapshot = self.builder.build(
                tables if tables is not None else self.settings.full_tables,
                description=description,
                kind=FULL,
            )
            self.retention.prune(self.settings.max_backup_count, protect=[snapshot.path])

        if self.verbose:
            print(f"Full backup written to {snapshot.path}")
        return snapshot

    def create_critical_backup(
        self, description: Optional[str] = None, tables: Optional[List[str]] = None
    ) -> Snapshot:
        """
        Create a critical snapshot. Critical snapshots are never pruned.

        Args:
            description: Optional description stored in the snapshot
            tables: Override the configured critical table set

        Returns:
            Snapshot: The written snapshot
        """
        with self.lock():
            snapshot = self.builder.build(
                tables if tables is not None else self.settings.critical_tables,
                description=description,
                kind=CRITICAL,
            )

        if self.verbose:
            print(f"Critical backup written to {snapshot.path}")
        return snapshot

    def restore(self, path: str, options: Optional[RestoreOptions] = None) -> RestoreReport:
        """Restore a snapshot. See :meth:`RecoveryManager.restore`."""
        path = self.resolve_path(path)
        with self.lock():
            report = self.recovery.restore(path, options)

        logger.info(
            "Restore of %s %s: %d tables, %d records",
            path,
            report.status,
            report.tables_restored,
            report.records_restored,
        )
        return report

    def validate_backup(self, path: str) -> ValidationResult:
        return self.validator.validate(self.resolve_path(path))

    def prune(self, max_count: Optional[int] = None) -> List[str]:
        """Delete full snapshots beyond the retention window."""
        keep = self.settings.max_backup_count if max_count is None else max_count
        with self.lock():
            return self.retention.prune(keep)

    def list_backups(self) -> List[SnapshotInfo]:
        """
        List snapshots on disk, newest first.

        Files whose content cannot be read are still listed, with their
        metadata left empty, and a warning is logged.
        """
        backups = []
        for path in self.storage.list():
            filename = os.path.basename(path)
            kind, timestamp, _ = parse_snapshot_filename(filename)
            info = SnapshotInfo(
                path=path,
                filename=filename,
                kind=kind,
                timestamp=timestamp,
                size=os.path.getsize(path),
            )
            try:
                snapshot = Snapshot.from_dict(self.storage.read(path), path=path)
            except SnapshotError as e:
                logger.warning("Could not read snapshot %s: %s", filename, e.message)
            else:
                info.kind = snapshot.kind
                info.tables = list(snapshot.metadata.tables)
                info.row_counts = dict(snapshot.metadata.row_counts)
                info.description = snapshot.metadata.description
                info.format_version = snapshot.metadata.format_version
            backups.append(info)
        return backups

    def resolve_path(self, name: str) -> str:
        """Resolve a snapshot name relative to the backup directory."""
        return self.storage.resolve(name)

    def close(self) -> None:
        self.store.close()
