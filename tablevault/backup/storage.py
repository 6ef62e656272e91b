"""Snapshot file storage."""

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tablevault.utils.errors import SnapshotError, create_error_suggestions

from .models import CRITICAL, FULL

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%f"

# backup_2024-05-01T03-00-00-123456Z.json, critical_backup_..._2.json,
# and the legacy backup_2024-05-01T03-00-00.json
SNAPSHOT_FILENAME = re.compile(
    r"^(?P<critical>critical_)?backup_"
    r"(?P<stamp>\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})(?:-(?P<micro>\d{6}))?Z?"
    r"(?:_(?P<seq>\d+))?\.json$"
)


def parse_snapshot_filename(filename: str) -> Optional[Tuple[str, datetime, int]]:
    """
    Parse a snapshot filename.

    Returns:
        Optional[Tuple[str, datetime, int]]: kind, UTC timestamp and sequence
        number, or None if the name is not a snapshot name
    """
    match = SNAPSHOT_FILENAME.match(filename)
    if not match:
        return None

    timestamp = datetime.strptime(match.group("stamp"), "%Y-%m-%dT%H-%M-%S")
    if match.group("micro"):
        timestamp = timestamp.replace(microsecond=int(match.group("micro")))

    kind = CRITICAL if match.group("critical") else FULL
    return kind, timestamp.replace(tzinfo=timezone.utc), int(match.group("seq") or 0)


class SnapshotStorage:
    """Reads and writes snapshot files in one backup directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def ensure_directory(self) -> Path:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotError(f"Cannot create backup directory {self.directory}: {e}") from e
        return self.directory

    def snapshot_path(self, kind: str, timestamp: datetime) -> str:
        """Return an unused path for a snapshot taken at ``timestamp``."""
        prefix = "critical_backup" if kind == CRITICAL else "backup"
        stem = f"{prefix}_{timestamp.strftime(TIMESTAMP_FORMAT)}Z"

        candidate = self.directory / f"{stem}.json"
        sequence = 1
        while candidate.exists():
            candidate = self.directory / f"{stem}_{sequence}.json"
            sequence += 1
        return str(candidate)

    def write(self, path: str, payload: Dict[str, Any]) -> str:
        """
        Write a snapshot atomically.

        The content goes to a temporary file in the same directory which is
        flushed, fsynced and renamed into place.

        Raises:
            SnapshotError: If the file cannot be written
        """
        self.ensure_directory()
        target = Path(path)

        fd, temp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=str(target.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            self.rename(temp_path, str(target))
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise SnapshotError(
                f"Failed to write snapshot {target.name}: {e}",
                suggestions=["Check free disk space and permissions of the backup directory"],
            ) from e

        logger.debug("Wrote snapshot %s", target)
        return str(target)

    def read(self, path: str) -> Any:
        """
        Read and parse a snapshot file.

        Raises:
            SnapshotError: If the file is missing, unreadable or not JSON
        """
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise SnapshotError(
                f"Snapshot not found: {path}",
                suggestions=["Run 'tablevault backup list' to see available backups"],
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SnapshotError(
                f"Snapshot is not valid JSON: {path}",
                details=str(e),
                suggestions=create_error_suggestions("snapshot_corrupted"),
            ) from e

    def list(self, kind: Optional[str] = None) -> List[str]:
        """
        List snapshot files, newest first.

        Args:
            kind: Restrict to ``full`` or ``critical`` snapshots
        """
        if not self.directory.is_dir():
            return []

        entries = []
        for entry in self.directory.iterdir():
            if not entry.is_file():
                continue
            parsed = parse_snapshot_filename(entry.name)
            if parsed is None:
                continue
            entry_kind, timestamp, sequence = parsed
            if kind is not None and entry_kind != kind:
                continue
            entries.append((timestamp, sequence, str(entry)))

        entries.sort(reverse=True)
        return [path for _, _, path in entries]

    def delete(self, path: str) -> None:
        os.unlink(path)
        logger.debug("Deleted snapshot %s", path)

    def rename(self, source: str, destination: str) -> str:
        os.replace(source, destination)
        return destination

    def resolve(self, name: str) -> str:
        """Resolve a snapshot name, falling back to the backup directory."""
        if os.path.exists(name) or os.path.isabs(name):
            return name
        candidate = self.directory / name
        if candidate.exists():
            return str(candidate)
        return name
