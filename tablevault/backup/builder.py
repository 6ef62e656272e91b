"""Snapshot assembly: export tables, checksum them and write one file."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from tablevault.config.settings import DEFAULT_FORMAT_VERSION
from tablevault.store import Row
from tablevault.utils.errors import StoreError
from tablevault.utils.logging import EventLogger

from .checksum import digest
from .exporter import TableExporter
from .models import FULL, SNAPSHOT_KINDS, Snapshot, SnapshotMetadata
from .storage import SnapshotStorage

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """Builds full and critical snapshots."""

    def __init__(
        self,
        exporter: TableExporter,
        storage: SnapshotStorage,
        format_version: str = DEFAULT_FORMAT_VERSION,
        events: Optional[EventLogger] = None,
    ):
        self.exporter = exporter
        self.storage = storage
        self.format_version = format_version
        self.events = events or EventLogger()

    def build(self, tables: List[str], description: Optional[str] = None, kind: str = FULL) -> Snapshot:
        """
        Export ``tables`` in order and write them as one snapshot file.

        A table whose export fails is left out of the snapshot and recorded in
        ``Snapshot.errors``. The file is written even when every export fails.

        Args:
            tables: Table names to export
            description: Optional free-text description
            kind: ``full`` or ``critical``

        Returns:
            Snapshot: The written snapshot, with ``path`` set

        Raises:
            SnapshotError: If the file cannot be written
        """
        if kind not in SNAPSHOT_KINDS:
            raise ValueError(f"Unknown snapshot kind: {kind}")

        now = datetime.now(timezone.utc)
        self.events.info(f"Starting {kind} backup", tables=len(tables))

        data: Dict[str, List[Row]] = {}
        metadata = SnapshotMetadata(
            timestamp=now.isoformat().replace("+00:00", "Z"),
            format_version=self.format_version,
            kind=kind,
            description=description,
        )
        errors: Dict[str, str] = {}

        for table in tables:
            try:
                rows = self.exporter.export(table)
            except StoreError as e:
                errors[table] = e.message
                self.events.error(f"Failed to export table {table}", table=table, error=e.message)
                continue

            data[table] = rows
            metadata.tables.append(table)
            metadata.row_counts[table] = len(rows)
            metadata.checksums[table] = digest(rows)
            logger.debug("Table %s: %d rows", table, len(rows))

        snapshot = Snapshot(metadata=metadata, tables=data, errors=errors)

        self.storage.ensure_directory()
        path = self.storage.snapshot_path(kind, now)
        snapshot.path = self.storage.write(path, snapshot.to_dict())

        self.events.info(
            f"{kind.capitalize()} backup completed",
            path=snapshot.path,
            tables=len(metadata.tables),
            rows=snapshot.total_rows,
            failed_tables=len(errors),
        )
        return snapshot
