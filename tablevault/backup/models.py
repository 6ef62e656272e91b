"""Snapshot, validation and restore data structures."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from tablevault.utils.errors import SnapshotError

FULL = "full"
CRITICAL = "critical"
SNAPSHOT_KINDS = (FULL, CRITICAL)

Row = Dict[str, Any]


@dataclass
class SnapshotMetadata:
    """Header of a snapshot file."""

    timestamp: str
    format_version: str
    kind: str = FULL
    tables: List[str] = field(default_factory=list)
    row_counts: Dict[str, int] = field(default_factory=dict)
    checksums: Dict[str, str] = field(default_factory=dict)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "timestamp": self.timestamp,
            "format_version": self.format_version,
            "kind": self.kind,
            "tables": list(self.tables),
            "row_counts": dict(self.row_counts),
            "checksums": dict(self.checksums),
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_kind: str = FULL) -> "SnapshotMetadata":
        """
        Read metadata, accepting the legacy ``version``/``recordCount`` keys.

        Raises:
            SnapshotError: If ``tables``, the row counts or the checksums have the wrong type
        """
        tables = data.get("tables") or []
        if not isinstance(tables, list) or not all(isinstance(name, str) for name in tables):
            raise SnapshotError("Snapshot metadata 'tables' must be a list of table names")

        row_counts = metadata_row_counts(data)
        if not isinstance(row_counts, dict) or not all(
            isinstance(count, int) and not isinstance(count, bool) for count in row_counts.values()
        ):
            raise SnapshotError("Snapshot metadata row counts must map table names to integers")

        checksums = data.get("checksums") or {}
        if not isinstance(checksums, dict):
            raise SnapshotError("Snapshot metadata 'checksums' must be an object")

        return cls(
            timestamp=data.get("timestamp", ""),
            format_version=metadata_format_version(data) or "",
            kind=data.get("kind", default_kind),
            tables=list(tables),
            row_counts=dict(row_counts),
            checksums=dict(checksums),
            description=data.get("description"),
        )


@dataclass
class Snapshot:
    """A point-in-time copy of a set of tables."""

    metadata: SnapshotMetadata
    tables: Dict[str, List[Row]]
    path: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return self.metadata.kind

    @property
    def total_rows(self) -> int:
        return sum(self.metadata.row_counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {"metadata": self.metadata.to_dict(), "tables": self.tables}

    @classmethod
    def from_dict(cls, payload: Any, path: Optional[str] = None) -> "Snapshot":
        """
        Build a snapshot from a parsed file.

        Raises:
            SnapshotError: If the payload lacks the metadata or table sections
        """
        if not isinstance(payload, dict):
            raise SnapshotError("Snapshot must be a JSON object", details=path)

        metadata = payload.get("metadata")
        tables = payload_tables(payload)
        if not isinstance(metadata, dict):
            raise SnapshotError("Snapshot has no metadata section", details=path)
        if not isinstance(tables, dict):
            raise SnapshotError("Snapshot has no table data section", details=path)

        default_kind = kind_from_path(path) if path else FULL
        return cls(
            metadata=SnapshotMetadata.from_dict(metadata, default_kind=default_kind),
            tables=tables,
            path=path,
        )


@dataclass
class SnapshotInfo:
    """Listing entry for a snapshot on disk."""

    path: str
    filename: str
    kind: str
    timestamp: Optional[datetime]
    size: int
    tables: List[str] = field(default_factory=list)
    row_counts: Dict[str, int] = field(default_factory=dict)
    description: Optional[str] = None
    format_version: Optional[str] = None

    @property
    def total_rows(self) -> int:
        return sum(self.row_counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "filename": self.filename,
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "size": self.size,
            "tables": self.tables,
            "row_counts": self.row_counts,
            "description": self.description,
            "format_version": self.format_version,
        }


@dataclass
class ValidationResult:
    """Outcome of validating a snapshot."""

    valid: bool
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "issues": list(self.issues)}


@dataclass
class RestoreOptions:
    """Knobs for a restore run."""

    clear_before_restore: bool = False
    only_tables: Optional[List[str]] = None
    skip_tables: Optional[List[str]] = None
    require_valid: bool = False


@dataclass
class RestoreReport:
    """Outcome of a restore run. Returned to the caller and logged, never persisted."""

    timestamp: str
    source_path: str
    tables_restored: int = 0
    records_restored: int = 0
    per_table_errors: Dict[str, str] = field(default_factory=dict)
    per_table_counts: Dict[str, int] = field(default_factory=dict)
    pre_restore_snapshot_path: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.tables_restored > 0 and not self.per_table_errors

    @property
    def status(self) -> str:
        if self.success:
            return "succeeded"
        if self.tables_restored > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "source_path": self.source_path,
            "success": self.success,
            "status": self.status,
            "tables_restored": self.tables_restored,
            "records_restored": self.records_restored,
            "per_table_errors": dict(self.per_table_errors),
            "per_table_counts": dict(self.per_table_counts),
            "pre_restore_snapshot_path": self.pre_restore_snapshot_path,
            "warnings": list(self.warnings),
        }


def payload_tables(payload: Dict[str, Any]) -> Any:
    """Return the table data section, ``tables`` or legacy ``data``."""
    if "tables" in payload:
        return payload["tables"]
    return payload.get("data")


def metadata_format_version(metadata: Dict[str, Any]) -> Optional[str]:
    if "format_version" in metadata:
        return metadata["format_version"]
    return metadata.get("version")


def metadata_row_counts(metadata: Dict[str, Any]) -> Dict[str, Any]:
    if "row_counts" in metadata:
        return metadata["row_counts"] or {}
    return metadata.get("recordCount") or {}


def kind_from_path(path: str) -> str:
    return CRITICAL if os.path.basename(path).startswith("critical_") else FULL
