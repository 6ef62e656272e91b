"""Retention of full snapshots."""

import logging
import os
from typing import Iterable, List, Optional

from tablevault.utils.logging import EventLogger

from .models import FULL
from .storage import SnapshotStorage

logger = logging.getLogger(__name__)


class RetentionManager:
    """Keeps only the newest full snapshots. Critical snapshots are never pruned."""

    def __init__(self, storage: SnapshotStorage, events: Optional[EventLogger] = None):
        self.storage = storage
        self.events = events or EventLogger()

    def prune(self, max_count: int, protect: Iterable[str] = ()) -> List[str]:
        """
        Delete full snapshots beyond the newest ``max_count``.

        Snapshots are ordered by the timestamp embedded in their filename.
        A file that cannot be deleted is logged and skipped.

        Args:
            max_count: Number of full snapshots to keep
            protect: Paths that must not be deleted

        Returns:
            List[str]: Paths that were deleted
        """
        if max_count < 0:
            raise ValueError(f"max_count must not be negative: {max_count}")

        protected = {os.path.realpath(path) for path in protect}
        candidates = self.storage.list(kind=FULL)[max_count:]
        self.events.info("Starting backup cleanup", max_count=max_count, candidates=len(candidates))

        deleted = []
        for path in candidates:
            if os.path.realpath(path) in protected:
                logger.debug("Keeping protected snapshot %s", path)
                continue
            try:
                self.storage.delete(path)
            except OSError as e:
                logger.error("Failed to delete old snapshot %s: %s", path, e)
                self.events.error("Failed to delete old backup", path=path, error=str(e))
                continue
            deleted.append(path)
            self.events.info("Deleted old backup", path=path)

        if deleted:
            logger.info("Pruned %d old snapshot(s)", len(deleted))
        self.events.info("Backup cleanup completed", deleted=len(deleted))
        return deleted
