"""Restore of snapshots into the relational store."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from tablevault.config.settings import BackupSettings
from tablevault.utils.errors import (
    ConfigurationError,
    SafetyNetError,
    SnapshotError,
    SnapshotIntegrityError,
    StoreError,
    create_error_suggestions,
)
from tablevault.utils.logging import EventLogger

from .builder import SnapshotBuilder
from .importer import TableImporter
from .models import FULL, RestoreOptions, RestoreReport, Snapshot
from .retention import RetentionManager
from .storage import SnapshotStorage
from .validator import SnapshotValidator

logger = logging.getLogger(__name__)

SAFETY_NET_DESCRIPTION = "Automatic pre-restore backup"


class RecoveryManager:
    """Restores snapshots table by table behind a mandatory safety-net backup."""

    def __init__(
        self,
        settings: BackupSettings,
        storage: SnapshotStorage,
        builder: SnapshotBuilder,
        importer: TableImporter,
        validator: SnapshotValidator,
        retention: RetentionManager,
        events: Optional[EventLogger] = None,
    ):
        self.settings = settings
        self.storage = storage
        self.builder = builder
        self.importer = importer
        self.validator = validator
        self.retention = retention
        self.events = events or EventLogger()

    def restore(self, path: str, options: Optional[RestoreOptions] = None) -> RestoreReport:
        """
        Restore a snapshot.

        Before any table is touched a full snapshot of the live store is written.
        Failures of individual tables are recorded in the report and never stop
        the remaining tables.

        Args:
            path: Snapshot file to restore from
            options: Restore options

        Returns:
            RestoreReport: Outcome of the restore

        Raises:
            SnapshotError: If the snapshot cannot be read or lacks its sections
            SnapshotIntegrityError: If ``require_valid`` is set and validation fails
            SafetyNetError: If the pre-restore backup cannot be taken
        """
        options = options or RestoreOptions()
        report = RestoreReport(timestamp=datetime.now(timezone.utc).isoformat(), source_path=path)

        self.events.info("Starting restore", path=path, clear=options.clear_before_restore)

        snapshot = Snapshot.from_dict(self.storage.read(path), path=path)

        if snapshot.metadata.format_version != self.settings.format_version:
            warning = (
                f"Snapshot format version {snapshot.metadata.format_version!r} differs from "
                f"current version {self.settings.format_version!r}"
            )
            report.warnings.append(warning)
            self.events.warn(warning, path=path)

        if options.require_valid:
            result = self.validator.validate(path)
            if not result.valid:
                raise SnapshotIntegrityError(
                    f"Snapshot failed validation: {path}",
                    issues=result.issues,
                    suggestions=create_error_suggestions("snapshot_corrupted"),
                )

        report.pre_restore_snapshot_path = self._take_safety_net(path)

        for table in self._worklist(snapshot, options, report):
            self._restore_table(snapshot, table, options, report)

        if report.success:
            self.events.info(
                "Restore completed",
                tables=report.tables_restored,
                records=report.records_restored,
            )
        else:
            self.events.error(
                "Restore finished with errors",
                status=report.status,
                tables=report.tables_restored,
                failed_tables=len(report.per_table_errors),
            )
        return report

    def _take_safety_net(self, source_path: str) -> str:
        tables = self.settings.full_tables
        try:
            safety_net = self.builder.build(tables, description=SAFETY_NET_DESCRIPTION, kind=FULL)
        except SnapshotError as e:
            raise SafetyNetError(
                f"Pre-restore backup failed, restore aborted: {e.message}",
                suggestions=create_error_suggestions("safety_net_failed"),
            ) from e

        if tables and not safety_net.metadata.tables:
            raise SafetyNetError(
                "Pre-restore backup captured no tables, restore aborted",
                details=f"Written to {safety_net.path}",
                suggestions=create_error_suggestions("safety_net_failed"),
            )

        self.events.info("Pre-restore backup created", path=safety_net.path)
        self.retention.prune(self.settings.max_backup_count, protect=[source_path, safety_net.path])
        return safety_net.path

    def _worklist(self, snapshot: Snapshot, options: RestoreOptions, report: RestoreReport) -> List[str]:
        tables = list(snapshot.metadata.tables)

        if options.only_tables is not None:
            for name in options.only_tables:
                if name not in tables:
                    warning = f"Requested table not in snapshot: {name}"
                    report.warnings.append(warning)
                    self.events.warn(warning, table=name)
            tables = [table for table in tables if table in options.only_tables]

        if options.skip_tables is not None:
            tables = [table for table in tables if table not in options.skip_tables]

        return tables

    def _restore_table(self, snapshot: Snapshot, table: str, options: RestoreOptions, report: RestoreReport) -> None:
        rows = snapshot.tables.get(table)
        if not isinstance(rows, list) or not rows:
            self._table_failed(report, table, "no data in snapshot")
            return

        try:
            conflict_key = self.settings.conflict_key(table)
        except ConfigurationError as e:
            self._table_failed(report, table, e.message)
            return

        if options.clear_before_restore:
            try:
                self.importer.clear(table)
            except StoreError as e:
                self._table_failed(report, table, f"clear failed: {e.message}")
                return

        try:
            written = self.importer.upsert(table, rows, conflict_key)
        except StoreError as e:
            self._table_failed(report, table, f"import failed: {e.message}")
            return

        report.per_table_counts[table] = written
        if written > 0:
            report.tables_restored += 1
            report.records_restored += written
        self.events.info(f"Restored table {table}", table=table, rows=written)

    def _table_failed(self, report: RestoreReport, table: str, message: str) -> None:
        report.per_table_errors[table] = message
        self.events.error(f"Failed to restore table {table}: {message}", table=table)
