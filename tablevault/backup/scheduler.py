"""Scheduled full backups through the user's crontab."""

import logging
import os
import shlex
import shutil
import subprocess
import sys
from typing import Any, Dict, List, Optional

from tablevault.utils.errors import SchedulerError

logger = logging.getLogger(__name__)

CRON_MARKER = "# tablevault scheduled backup"


class BackupScheduler:
    """Installs, removes and reports the crontab entry for automatic backups."""

    def __init__(
        self,
        schedule: str = "0 3 * * *",
        config_path: Optional[str] = None,
        working_dir: Optional[str] = None,
        verbose: bool = False,
    ):
        """
        Initialize backup scheduler.

        Args:
            schedule: 5-field cron expression
            config_path: Configuration file passed to the scheduled command
            working_dir: Directory the scheduled command runs in
            verbose: Enable verbose output
        """
        self.schedule = schedule
        self.config_path = os.path.abspath(config_path) if config_path else None
        self.working_dir = os.path.abspath(working_dir or os.getcwd())
        self.verbose = verbose

    def build_command(self) -> str:
        """Build the shell command run by cron."""
        executable = shutil.which("tablevault")
        parts = [executable] if executable else [sys.executable, "-m", "tablevault"]
        if self.config_path:
            parts.extend(["--config", self.config_path])
        parts.extend(["backup", "create", "--description", "Scheduled backup"])

        command = " ".join(shlex.quote(part) for part in parts)
        return f"cd {shlex.quote(self.working_dir)} && {command}"

    def build_entry(self) -> str:
        return f"{self.schedule} {self.build_command()} {CRON_MARKER}"

    def install(self) -> Dict[str, Any]:
        """
        Install (or replace) the scheduled backup entry.

        Returns:
            Dict[str, Any]: Installation results
        """
        lines = [line for line in self._read_crontab() if CRON_MARKER not in line]
        entry = self.build_entry()
        lines.append(entry)
        self._write_crontab(lines)

        if self.verbose:
            print(f"Scheduled backups installed: {self.schedule}")

        logger.info("Installed crontab entry: %s", entry)
        return {"success": True, "schedule": self.schedule, "entry": entry}

    def remove(self) -> Dict[str, Any]:
        """
        Remove the scheduled backup entry.

        Returns:
            Dict[str, Any]: Removal results
        """
        current = self._read_crontab()
        remaining = [line for line in current if CRON_MARKER not in line]
        removed = len(current) - len(remaining)

        if removed:
            self._write_crontab(remaining)
            logger.info("Removed %d scheduled backup crontab line(s)", removed)

        return {"success": True, "removed": removed}

    def status(self) -> Dict[str, Any]:
        """
        Report the installed scheduled backup entries.

        Returns:
            Dict[str, Any]: ``installed`` flag and matching entries
        """
        entries = [line for line in self._read_crontab() if CRON_MARKER in line]
        return {"installed": bool(entries), "entries": entries}

    def _read_crontab(self) -> List[str]:
        self._require_crontab()
        try:
            result = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
        except OSError as e:
            raise SchedulerError(f"Cannot read crontab: {e}") from e

        # crontab -l exits non-zero when the user has no crontab yet
        if result.returncode != 0:
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    def _write_crontab(self, lines: List[str]) -> None:
        content = "\n".join(lines) + "\n" if lines else ""
        try:
            process = subprocess.Popen(["crontab", "-"], stdin=subprocess.PIPE, text=True)
            process.communicate(input=content)
        except OSError as e:
            raise SchedulerError(f"Cannot install crontab: {e}") from e

        if process.returncode != 0:
            raise SchedulerError("Failed to install crontab", details=f"crontab exited with {process.returncode}")

    def _require_crontab(self) -> None:
        if shutil.which("crontab") is None:
            raise SchedulerError(
                "crontab command not found",
                suggestions=[
                    "Install cron for your platform",
                    "Or run 'tablevault backup create' from another scheduler",
                ],
            )
