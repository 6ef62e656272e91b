"""Tests for snapshot retention."""

import os
from unittest.mock import patch

import pytest

from tablevault.backup.retention import RetentionManager
from tablevault.backup.storage import SnapshotStorage
from tablevault.utils.logging import EventLogger


def touch(directory, name):
    path = os.path.join(directory, name)
    with open(path, "w") as f:
        f.write("{}")
    return path


class TestRetentionManager:
    """Test pruning of old full snapshots."""

    def setup_method(self):
        """Setup test environment."""
        self.names = [f"backup_2024-05-0{day}T03-00-00-000000Z.json" for day in range(1, 6)]

    def test_keeps_newest(self, temp_directory):
        """Test five snapshots pruned to three deletes the two oldest."""
        for name in self.names:
            touch(temp_directory, name)

        deleted = RetentionManager(SnapshotStorage(temp_directory)).prune(3)

        assert sorted(os.path.basename(p) for p in deleted) == self.names[:2]
        assert sorted(os.listdir(temp_directory)) == self.names[2:]

    def test_nothing_to_prune(self, temp_directory):
        """Test fewer snapshots than the window."""
        for name in self.names[:2]:
            touch(temp_directory, name)

        assert RetentionManager(SnapshotStorage(temp_directory)).prune(3) == []

    def test_zero_keeps_nothing(self, temp_directory):
        """Test a window of zero deletes every full snapshot."""
        for name in self.names:
            touch(temp_directory, name)

        deleted = RetentionManager(SnapshotStorage(temp_directory)).prune(0)

        assert len(deleted) == 5

    def test_negative_window_rejected(self, temp_directory):
        """Test a negative window is an error."""
        with pytest.raises(ValueError):
            RetentionManager(SnapshotStorage(temp_directory)).prune(-1)

    def test_critical_snapshots_never_pruned(self, temp_directory):
        """Test critical snapshots are outside retention."""
        critical = touch(temp_directory, "critical_backup_2024-01-01T00-00-00-000000Z.json")
        for name in self.names:
            touch(temp_directory, name)

        RetentionManager(SnapshotStorage(temp_directory)).prune(1)

        assert os.path.exists(critical)

    def test_protected_paths_kept(self, temp_directory):
        """Test protected snapshots survive pruning."""
        paths = [touch(temp_directory, name) for name in self.names]

        deleted = RetentionManager(SnapshotStorage(temp_directory)).prune(1, protect=[paths[0]])

        assert paths[0] not in deleted
        assert os.path.exists(paths[0])
        assert len(deleted) == 3

    def test_orders_by_filename_timestamp(self, temp_directory):
        """Test ordering ignores file modification times."""
        paths = [touch(temp_directory, name) for name in self.names]
        # Make the oldest snapshot the most recently modified file
        os.utime(paths[0], (2_000_000_000, 2_000_000_000))

        deleted = RetentionManager(SnapshotStorage(temp_directory)).prune(4)

        assert deleted == [paths[0]]

    def test_deletion_errors_do_not_stop_pruning(self, temp_directory):
        """Test a failing deletion is logged and the rest continue."""
        paths = [touch(temp_directory, name) for name in self.names]
        storage = SnapshotStorage(temp_directory)
        real_delete = storage.delete

        def flaky_delete(path):
            if path == paths[1]:
                raise PermissionError("read-only")
            real_delete(path)

        with patch.object(storage, "delete", side_effect=flaky_delete):
            deleted = RetentionManager(storage).prune(2)

        assert sorted(deleted) == sorted([paths[0], paths[2]])
        assert os.path.exists(paths[1])

    def test_prune_emits_events(self, temp_directory):
        """Test pruning records start, each deletion, failures and completion."""
        paths = [touch(temp_directory, name) for name in self.names]
        storage = SnapshotStorage(temp_directory)
        received = []
        real_delete = storage.delete

        def flaky_delete(path):
            if path == paths[1]:
                raise PermissionError("read-only")
            real_delete(path)

        with patch.object(storage, "delete", side_effect=flaky_delete):
            RetentionManager(storage, events=EventLogger(sinks=[received.append])).prune(3)

        assert [(event["level"], event["message"]) for event in received] == [
            ("info", "Starting backup cleanup"),
            ("error", "Failed to delete old backup"),
            ("info", "Deleted old backup"),
            ("info", "Backup cleanup completed"),
        ]
        assert all(event["category"] == "database" for event in received)
        assert received[1]["details"]["path"] == paths[1]
        assert received[-1]["details"] == {"deleted": 1}
