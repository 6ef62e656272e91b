"""PID lock file preventing concurrent backup and restore runs."""

import errno
import logging
import os
from typing import Optional

from tablevault.utils.errors import BackupLockError, create_error_suggestions

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".tablevault.lock"


def pid_alive(pid: int) -> bool:
    """Check whether a process exists (``kill -0``)."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError as e:
        return e.errno != errno.ESRCH
    return True


class BackupLock:
    """Exclusive lock on a backup directory.

    Usable as a context manager. A lock file left behind by a process that no
    longer exists is treated as stale and replaced.
    """

    def __init__(self, directory: str):
        self.directory = directory
        self.path = os.path.join(directory, LOCK_FILENAME)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """
        Take the lock.

        Raises:
            BackupLockError: If a live process holds the lock
        """
        os.makedirs(self.directory, exist_ok=True)

        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                owner = self.owner()
                if owner is not None and pid_alive(owner):
                    raise BackupLockError(
                        f"Another backup or restore is running (pid {owner})",
                        suggestions=create_error_suggestions("lock_held", lock_path=self.path),
                    )
                logger.warning("Removing stale lock file %s (pid %s)", self.path, owner)
                try:
                    os.unlink(self.path)
                except FileNotFoundError:
                    pass
                continue

            with os.fdopen(fd, "w") as f:
                f.write(str(os.getpid()))
            self._held = True
            logger.debug("Acquired lock %s", self.path)
            return

        raise BackupLockError(
            f"Could not acquire lock {self.path}",
            suggestions=create_error_suggestions("lock_held", lock_path=self.path),
        )

    def release(self) -> None:
        if not self._held:
            return
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        self._held = False
        logger.debug("Released lock %s", self.path)

    def owner(self) -> Optional[int]:
        """Return the PID recorded in the lock file, or None if unreadable."""
        try:
            with open(self.path) as f:
                return int(f.read().strip())
        except (OSError, ValueError):
            return None

    def __enter__(self) -> "BackupLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
