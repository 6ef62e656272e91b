"""Test CLI commands."""

import json
import os
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from tablevault.cli import cli
from tablevault.utils.errors import StoreError


class TestCLICommands:
    """Test CLI command functionality."""

    def setup_method(self):
        """Setup test environment."""
        self.runner = CliRunner()

    def test_cli_version(self):
        """Test CLI version display."""
        result = self.runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "version" in result.output.lower()

    def test_cli_help(self):
        """Test CLI help display."""
        result = self.runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "TableVault CLI" in result.output
        assert "Commands:" in result.output

    def test_backup_help(self):
        """Test backup group help lists its commands."""
        result = self.runner.invoke(cli, ["backup", "--help"])

        assert result.exit_code == 0
        for command in ("create", "list", "validate", "restore", "prune", "schedule"):
            assert command in result.output

    def test_init_command(self, temp_directory):
        """Test init writes tablevault.yml."""
        with self.runner.isolated_filesystem(temp_dir=temp_directory):
            result = self.runner.invoke(cli, ["init"])

            assert result.exit_code == 0
            assert "Created configuration" in result.output
            assert os.path.exists("tablevault.yml")

            again = self.runner.invoke(cli, ["init"])
            assert again.exit_code == 1
            assert "--force" in again.output

            forced = self.runner.invoke(cli, ["init", "--force"])
            assert forced.exit_code == 0

    def test_init_dry_run(self, temp_directory):
        """Test dry-run does not write anything."""
        with self.runner.isolated_filesystem(temp_dir=temp_directory):
            result = self.runner.invoke(cli, ["--dry-run", "init"])

            assert result.exit_code == 0
            assert "DRY RUN" in result.output
            assert not os.path.exists("tablevault.yml")

    def test_config_validate(self, config_file):
        """Test validating a good configuration file."""
        result = self.runner.invoke(cli, ["--config", config_file, "config", "validate"])

        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_config_validate_invalid(self, temp_directory):
        """Test validating a broken configuration file."""
        path = os.path.join(temp_directory, "tablevault.yml")
        with open(path, "w") as f:
            f.write("backup:\n  max_backup_count: lots\n")

        result = self.runner.invoke(cli, ["--config", path, "config", "validate"])

        assert result.exit_code == 1
        assert "max_backup_count" in result.output

    def test_config_show(self, config_file):
        """Test showing the effective configuration."""
        result = self.runner.invoke(cli, ["--config", config_file, "config", "show"])

        assert result.exit_code == 0
        assert "max_backup_count: 3" in result.output
        assert config_file in result.output

    def test_backup_create_dry_run(self, config_file):
        """Test dry-run backup creation."""
        result = self.runner.invoke(cli, ["--dry-run", "--config", config_file, "backup", "create", "--critical"])

        assert result.exit_code == 0
        assert "DRY RUN: Would create critical backup" in result.output
        assert "bot_settings" in result.output

    def test_backup_create_and_list(self, config_file, sqlite_database):
        """Test creating a backup and listing it."""
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "create", "-d", "manual"])

        assert result.exit_code == 0
        assert "Full backup created" in result.output
        assert "bot_settings: 2" in result.output
        assert "api_usage: 3" in result.output
        assert "Available backups (1)" in result.output

        listed = self.runner.invoke(cli, ["--config", config_file, "backup", "list", "--json"])

        assert listed.exit_code == 0
        backups = json.loads(listed.output)
        assert len(backups) == 1
        assert backups[0]["kind"] == "full"
        assert backups[0]["description"] == "manual"
        assert backups[0]["row_counts"] == {"bot_settings": 2, "api_usage": 3}

    def test_backup_create_critical(self, config_file, sqlite_database):
        """Test critical backups only contain critical tables."""
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "create", "--critical"])

        assert result.exit_code == 0
        assert "Critical backup created" in result.output
        assert "critical_backup_" in result.output
        assert "api_usage: 3" not in result.output

    def test_backup_list_empty(self, config_file):
        """Test listing with no backups."""
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "list"])

        assert result.exit_code == 0
        assert "No backups found" in result.output

    def _create_backup(self, config_file):
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "list", "--json"])
        before = {entry["path"] for entry in json.loads(result.output)}
        self.runner.invoke(cli, ["--config", config_file, "backup", "create"])
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "list", "--json"])
        created = [entry["path"] for entry in json.loads(result.output) if entry["path"] not in before]
        return created[0]

    def test_backup_validate(self, config_file, sqlite_database):
        """Test validating a good and a tampered snapshot."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(cli, ["--config", config_file, "backup", "validate", os.path.basename(path)])
        assert result.exit_code == 0
        assert "is valid" in result.output

        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        payload["tables"]["bot_settings"][0]["value"] = "tampered"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f)

        result = self.runner.invoke(cli, ["--config", config_file, "backup", "validate", path])
        assert result.exit_code == 1
        assert "Checksum mismatch for table bot_settings" in result.output

    def test_backup_restore_with_yes(self, config_file, sqlite_database):
        """Test a confirmed restore succeeds and exits 0."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(cli, ["--config", config_file, "backup", "restore", path, "--clear", "--yes"])

        assert result.exit_code == 0
        assert "Restore succeeded: 2 tables, 5 records" in result.output
        assert "Pre-restore backup:" in result.output

    def test_backup_restore_json(self, config_file, sqlite_database):
        """Test the JSON restore report."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(
            cli, ["--config", config_file, "backup", "restore", path, "--yes", "--json", "--tables", "bot_settings"]
        )

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["status"] == "succeeded"
        assert report["per_table_counts"] == {"bot_settings": 2}
        assert os.path.exists(report["pre_restore_snapshot_path"])

    def test_backup_restore_asks_confirmation(self, config_file, sqlite_database):
        """Test restore without --yes asks and can be cancelled."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(cli, ["--config", config_file, "backup", "restore", path], input="n\n")

        assert result.exit_code == 1
        assert "merged into existing data" in result.output
        assert "Restore cancelled" in result.output

    def test_backup_restore_confirmed_clear(self, config_file, sqlite_database):
        """Test restore with --clear warns about deletion and proceeds on yes."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(
            cli, ["--config", config_file, "backup", "restore", path, "--clear"], input="y\n"
        )

        assert result.exit_code == 0
        assert "DELETED" in result.output

    def test_backup_restore_failure_exit_code(self, config_file, sqlite_database):
        """Test a restore with failing tables exits non-zero."""
        path = self._create_backup(config_file)

        with patch("tablevault.backup.importer.TableImporter.upsert", side_effect=StoreError("read-only database")):
            result = self.runner.invoke(cli, ["--config", config_file, "backup", "restore", path, "--yes"])

        assert result.exit_code == 1
        assert "Restore failed" in result.output
        assert "import failed: read-only database" in result.output

    def test_backup_restore_missing_file(self, config_file):
        """Test restoring a file that does not exist."""
        result = self.runner.invoke(cli, ["--config", config_file, "backup", "restore", "nope.json", "--yes"])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_backup_restore_dry_run(self, config_file, sqlite_database):
        """Test dry-run restore only describes the plan."""
        path = self._create_backup(config_file)

        result = self.runner.invoke(
            cli, ["--dry-run", "--config", config_file, "backup", "restore", path, "--skip", "api_usage"]
        )

        assert result.exit_code == 0
        assert "DRY RUN: Would restore" in result.output
        assert "Skipping tables: api_usage" in result.output

    def test_backup_prune(self, config_file, sqlite_database):
        """Test pruning down to the requested count."""
        for _ in range(3):
            self.runner.invoke(cli, ["--config", config_file, "backup", "create"])

        result = self.runner.invoke(cli, ["--config", config_file, "backup", "prune", "--keep", "1"])

        assert result.exit_code == 0
        assert "Pruned 2 backup(s)" in result.output

    def test_backup_prune_dry_run(self, config_file, sqlite_database, temp_directory):
        """Test dry-run prune lists what would be deleted and keeps the files."""
        for _ in range(2):
            self.runner.invoke(cli, ["--config", config_file, "backup", "create"])

        result = self.runner.invoke(cli, ["--dry-run", "--config", config_file, "backup", "prune", "--keep", "1"])

        assert result.exit_code == 0
        assert result.output.count("DRY RUN: Would delete") == 1
        backups = [name for name in os.listdir(os.path.join(temp_directory, "backups")) if name.endswith(".json")]
        assert len(backups) == 2

    def test_backup_prune_dry_run_bad_config(self, temp_directory):
        """Test dry-run prune reports configuration errors through the error handler."""
        path = os.path.join(temp_directory, "tablevault.yml")
        with open(path, "w") as f:
            f.write("backup:\n  max_backup_count: lots\n")

        result = self.runner.invoke(cli, ["--dry-run", "--config", path, "backup", "prune"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Context: Backup pruning" in result.output

    def test_schedule_show_not_installed(self, config_file):
        """Test schedule status without a crontab entry."""
        with patch("tablevault.backup.scheduler.shutil.which", return_value="/usr/bin/crontab"):
            with patch("tablevault.backup.scheduler.subprocess.run") as mock_run:
                mock_run.return_value = MagicMock(returncode=1, stdout="")

                result = self.runner.invoke(cli, ["--config", config_file, "backup", "schedule", "show"])

        assert result.exit_code == 0
        assert "not installed" in result.output

    def test_schedule_install_dry_run(self, config_file):
        """Test dry-run schedule installation prints the entry."""
        result = self.runner.invoke(cli, ["--dry-run", "--config", config_file, "backup", "schedule", "install"])

        assert result.exit_code == 0
        assert "0 3 * * *" in result.output
        assert "backup create" in result.output
