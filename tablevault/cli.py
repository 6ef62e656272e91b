"""Main CLI entry point for TableVault.

This module provides the command-line interface for TableVault, the backup and
restore tool for the chat bot's relational store. It includes commands for
creating, listing, validating, restoring and pruning snapshots, scheduling
automatic backups and managing the configuration file.

The CLI is built using Click and provides a hierarchical command structure
with comprehensive help and error handling.
"""

import json
import os
from typing import List, Optional

import click
import yaml

from tablevault import __version__
from tablevault.utils.errors import ErrorHandler, format_validation_errors
from tablevault.utils.logging import setup_logging


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing")
@click.option("--log-file", help="Log to file in addition to console")
@click.option("--config", "config_path", help="Path to tablevault.yml")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    log_file: Optional[str],
    config_path: Optional[str],
) -> None:
    """TableVault CLI - Backup and restore for the bot's relational store.

    TableVault exports the store's tables to checksummed JSON snapshots,
    validates them, and restores them behind an automatic pre-restore backup.

    Args:
        ctx: Click context object containing shared state
        verbose: Enable verbose output for detailed logging
        dry_run: Show what would be done without executing commands
        log_file: Optional path to log file for additional logging
        config_path: Optional configuration file path
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    ctx.obj["log_file"] = log_file
    ctx.obj["config_path"] = config_path
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)

    # Setup logging
    setup_logging(verbose=verbose, log_file=log_file)


def _config_manager(ctx: click.Context):
    from tablevault.config import ConfigManager

    return ConfigManager(config_file=ctx.obj["config_path"])


def _backup_manager(ctx: click.Context):
    from tablevault.backup import BackupManager

    config = _config_manager(ctx).load_config()
    return BackupManager(config, verbose=ctx.obj["verbose"])


def _split_tables(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _print_backup_list(backups) -> None:
    if not backups:
        click.echo("No backups found")
        return

    click.echo(f"Available backups ({len(backups)}):")
    for info in backups:
        when = info.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC") if info.timestamp else "unknown"
        line = f"  {info.filename}  [{info.kind}]  {when}  {len(info.tables)} tables, {info.total_rows} rows"
        if info.description:
            line += f"  - {info.description}"
        click.echo(line)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create a default tablevault.yml in the current directory."""
    if ctx.obj["dry_run"]:
        click.echo("DRY RUN: Would create tablevault.yml with default settings")
        return

    try:
        config_manager = _config_manager(ctx)
        config_path = config_manager.initialize_config(force=force)

        click.echo(f"✓ Created configuration: {config_path}")
        click.echo("Edit store.url and backup.tables, then run 'tablevault backup create'")

    except FileExistsError as e:
        click.echo(f"✗ {e}", err=True)
        click.echo("Use --force to overwrite it", err=True)
        ctx.exit(1)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Configuration initialization")


@cli.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def config(ctx: click.Context) -> None:
    """Inspect and validate the configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration (file, defaults and environment)."""
    try:
        config_manager = _config_manager(ctx)
        effective = config_manager.load_config()

        source = config_manager.get_config_path() or "built-in defaults"
        click.echo(f"# Source: {source}")
        click.echo(yaml.safe_dump(effective.to_dict(), sort_keys=False, default_flow_style=False), nl=False)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Configuration display")


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate the configuration file."""
    config_manager = _config_manager(ctx)
    config_path = config_manager.get_config_path()

    if not config_path:
        click.echo("No configuration file found, built-in defaults are in use")
        return

    errors = config_manager.validator.validate_config_file(config_path)
    if errors:
        click.echo(f"✗ {config_path} is invalid", err=True)
        click.echo(format_validation_errors(errors), err=True)
        ctx.exit(1)

    click.echo(f"✓ {config_path} is valid")


@cli.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def backup(ctx: click.Context) -> None:
    """Create, inspect and restore snapshots."""
    pass


@backup.command("create")
@click.option("--critical", is_flag=True, help="Only back up tables flagged critical")
@click.option("--description", "-d", help="Description stored in the snapshot")
@click.pass_context
def backup_create(ctx: click.Context, critical: bool, description: Optional[str]) -> None:
    """Create a full (or critical) snapshot of the store."""
    kind = "critical" if critical else "full"

    if ctx.obj["dry_run"]:
        config = _config_manager(ctx).load_config()
        tables = config.backup.critical_tables if critical else config.backup.full_tables
        click.echo(f"DRY RUN: Would create {kind} backup in {config.backup.directory}")
        click.echo(f"DRY RUN: Tables: {', '.join(tables) or '(none)'}")
        return

    try:
        manager = _backup_manager(ctx)
        try:
            if critical:
                snapshot = manager.create_critical_backup(description=description)
            else:
                snapshot = manager.create_full_backup(description=description)

            click.echo(f"✓ {kind.capitalize()} backup created: {snapshot.path}")
            click.echo(f"  Tables: {len(snapshot.metadata.tables)}, rows: {snapshot.total_rows}")
            for table, count in snapshot.metadata.row_counts.items():
                click.echo(f"    {table}: {count}")
            for table, message in snapshot.errors.items():
                click.echo(f"⚠ Skipped table {table}: {message}")

            click.echo()
            _print_backup_list(manager.list_backups())
        finally:
            manager.close()

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup creation")

    if snapshot.errors and not snapshot.metadata.tables:
        ctx.exit(1)


@backup.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def backup_list(ctx: click.Context, as_json: bool) -> None:
    """List snapshots, newest first."""
    try:
        manager = _backup_manager(ctx)
        try:
            backups = manager.list_backups()
        finally:
            manager.close()

        if as_json:
            click.echo(json.dumps([info.to_dict() for info in backups], indent=2))
        else:
            _print_backup_list(backups)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup listing")


@backup.command("validate")
@click.argument("file")
@click.pass_context
def backup_validate(ctx: click.Context, file: str) -> None:
    """Check a snapshot's structure, row counts and checksums."""
    try:
        manager = _backup_manager(ctx)
        try:
            path = manager.resolve_path(file)
            result = manager.validate_backup(path)
        finally:
            manager.close()

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup validation")

    if result.valid:
        click.echo(f"✓ {path} is valid")
        return

    click.echo(f"✗ {path} has {len(result.issues)} issue(s)", err=True)
    click.echo(format_validation_errors(result.issues), err=True)
    ctx.exit(1)


@backup.command("restore")
@click.argument("file")
@click.option("--clear", is_flag=True, help="Delete existing rows before restoring each table")
@click.option("--tables", help="Comma-separated list of tables to restore")
@click.option("--skip", help="Comma-separated list of tables to skip")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option("--json", "as_json", is_flag=True, help="Output the restore report as JSON")
@click.pass_context
def backup_restore(
    ctx: click.Context,
    file: str,
    clear: bool,
    tables: Optional[str],
    skip: Optional[str],
    yes: bool,
    as_json: bool,
) -> None:
    """Restore a snapshot into the store.

    A full backup of the current data is always taken first. Without --clear
    the snapshot rows are merged into the existing tables: rows with the same
    key are overwritten and all other rows are kept.
    """
    from tablevault.backup import RestoreOptions

    options = RestoreOptions(
        clear_before_restore=clear,
        only_tables=_split_tables(tables),
        skip_tables=_split_tables(skip),
    )

    try:
        manager = _backup_manager(ctx)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Restore setup")

    try:
        path = manager.resolve_path(file)
        if not os.path.exists(path):
            raise FileNotFoundError(path)

        result = manager.validate_backup(path)
        if not result.valid:
            click.echo(f"⚠ {path} has {len(result.issues)} validation issue(s):", err=True)
            click.echo(format_validation_errors(result.issues), err=True)

        if ctx.obj["dry_run"]:
            click.echo(f"DRY RUN: Would restore {path}")
            click.echo(f"DRY RUN: Clear before restore: {'yes' if clear else 'no'}")
            if options.only_tables:
                click.echo(f"DRY RUN: Only tables: {', '.join(options.only_tables)}")
            if options.skip_tables:
                click.echo(f"DRY RUN: Skipping tables: {', '.join(options.skip_tables)}")
            return

        if not yes:
            if not result.valid:
                click.confirm("The snapshot failed validation. Restore anyway?", abort=True)
            if clear:
                click.echo("⚠ Existing rows in every restored table will be DELETED first.")
            else:
                click.echo("⚠ Rows will be merged into existing data; rows with the same key are overwritten.")
            click.confirm(f"Restore from {os.path.basename(path)}?", abort=True)

        report = manager.restore(path, options)

    except click.Abort:
        click.echo("Restore cancelled")
        ctx.exit(1)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Restore")
    finally:
        manager.close()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        status = "✓" if report.success else "✗"
        click.echo(f"{status} Restore {report.status}: {report.tables_restored} tables, {report.records_restored} records")
        click.echo(f"  Pre-restore backup: {report.pre_restore_snapshot_path}")
        for table, count in report.per_table_counts.items():
            click.echo(f"    {table}: {count}")
        for table, message in report.per_table_errors.items():
            click.echo(f"✗ {table}: {message}", err=True)
        for warning in report.warnings:
            click.echo(f"⚠ {warning}")

    if not report.success:
        ctx.exit(1)


@backup.command("prune")
@click.option("--keep", type=click.IntRange(min=0), help="Number of full backups to keep")
@click.pass_context
def backup_prune(ctx: click.Context, keep: Optional[int]) -> None:
    """Delete full backups beyond the retention window."""
    try:
        manager = _backup_manager(ctx)
        try:
            if ctx.obj["dry_run"]:
                keep_count = manager.settings.max_backup_count if keep is None else keep
                for path in manager.storage.list(kind="full")[keep_count:]:
                    click.echo(f"DRY RUN: Would delete {path}")
                return

            deleted = manager.prune(max_count=keep)
        finally:
            manager.close()

        for path in deleted:
            click.echo(f"  Deleted {path}")
        click.echo(f"✓ Pruned {len(deleted)} backup(s)")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup pruning")


@backup.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def schedule(ctx: click.Context) -> None:
    """Manage automatic backups through cron."""
    pass


def _scheduler(ctx: click.Context):
    from tablevault.backup import BackupScheduler

    config_manager = _config_manager(ctx)
    config = config_manager.load_config()
    return BackupScheduler(
        schedule=config.backup.schedule,
        config_path=config_manager.get_config_path(),
        verbose=ctx.obj["verbose"],
    )


@schedule.command("install")
@click.pass_context
def schedule_install(ctx: click.Context) -> None:
    """Install the crontab entry for scheduled backups."""
    try:
        scheduler = _scheduler(ctx)

        if ctx.obj["dry_run"]:
            click.echo(f"DRY RUN: Would add crontab entry: {scheduler.build_entry()}")
            return

        result = scheduler.install()
        click.echo(f"✓ Scheduled backups installed ({result['schedule']})")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Schedule installation")


@schedule.command("remove")
@click.pass_context
def schedule_remove(ctx: click.Context) -> None:
    """Remove the crontab entry for scheduled backups."""
    if ctx.obj["dry_run"]:
        click.echo("DRY RUN: Would remove TableVault crontab entries")
        return

    try:
        result = _scheduler(ctx).remove()
        if result["removed"]:
            click.echo("✓ Scheduled backups removed")
        else:
            click.echo("No scheduled backups were installed")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Schedule removal")


@schedule.command("show")
@click.pass_context
def schedule_show(ctx: click.Context) -> None:
    """Show the installed crontab entry."""
    try:
        status = _scheduler(ctx).status()
        if not status["installed"]:
            click.echo("Scheduled backups: not installed")
            return

        click.echo("Scheduled backups: installed")
        for entry in status["entries"]:
            click.echo(f"  {entry}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Schedule status")


if __name__ == "__main__":
    cli()
