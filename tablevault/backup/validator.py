"""Snapshot integrity validation."""

import logging
from typing import Any, List, Optional

from tablevault.utils.errors import SnapshotError
from tablevault.utils.logging import EventLogger

from .checksum import verify
from .models import ValidationResult, metadata_format_version, metadata_row_counts, payload_tables
from .storage import SnapshotStorage

logger = logging.getLogger(__name__)


class SnapshotValidator:
    """Checks that a snapshot is complete and its tables match their checksums."""

    def __init__(self, storage: SnapshotStorage, events: Optional[EventLogger] = None):
        self.storage = storage
        self.events = events or EventLogger()

    def validate(self, path: str) -> ValidationResult:
        """
        Validate a snapshot file.

        Every problem found is reported; validation does not stop at the first
        issue.

        Args:
            path: Snapshot file path

        Returns:
            ValidationResult: ``valid`` is True only when there are no issues
        """
        self.events.info("Validating backup", path=path)

        try:
            payload = self.storage.read(path)
        except SnapshotError as e:
            result = ValidationResult(valid=False, issues=[f"Cannot parse snapshot: {e.message}"])
        else:
            result = self.validate_payload(payload)

        if result.valid:
            self.events.info("Backup validation passed", path=path)
        else:
            self.events.error("Backup validation failed", path=path, issues=result.issues)
        logger.debug("Validated %s: %d issue(s)", path, len(result.issues))
        return result

    def validate_payload(self, payload: Any) -> ValidationResult:
        """Validate an already parsed snapshot."""
        issues: List[str] = []

        if not isinstance(payload, dict):
            return ValidationResult(valid=False, issues=["Snapshot is not a JSON object"])

        metadata = payload.get("metadata")
        tables = payload_tables(payload)

        has_metadata = isinstance(metadata, dict)
        if not has_metadata:
            issues.append("Missing metadata")
            metadata = {}
        if not isinstance(tables, dict):
            issues.append("Missing table data")
            tables = {}

        if has_metadata:
            if not metadata.get("timestamp"):
                issues.append("Missing timestamp in metadata")
            if not metadata_format_version(metadata):
                issues.append("Missing format version in metadata")

        listed = metadata.get("tables")
        if not isinstance(listed, list) or not listed:
            issues.append("No tables listed in metadata")
            listed = []

        row_counts = metadata_row_counts(metadata)
        if not isinstance(row_counts, dict):
            issues.append("Row counts in metadata are not an object")
            row_counts = {}

        checksums = metadata.get("checksums") or {}
        if not isinstance(checksums, dict):
            issues.append("Checksums in metadata are not an object")
            checksums = {}

        for table in listed:
            if not isinstance(table, str):
                issues.append(f"Invalid table name in metadata: {table!r}")
                continue

            if table not in tables:
                issues.append(f"Missing data for table: {table}")
                continue

            rows = tables[table]
            if not isinstance(rows, list):
                issues.append(f"Data for table {table} is not a list")
                continue

            expected_count = row_counts.get(table)
            if expected_count != len(rows):
                issues.append(f"Record count mismatch for table {table}: expected {expected_count}, got {len(rows)}")

            if not verify(rows, checksums.get(table)):
                issues.append(f"Checksum mismatch for table {table}")

        return ValidationResult(valid=not issues, issues=issues)
