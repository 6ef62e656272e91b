"""Error handling utilities for TableVault."""

import sys
import traceback
from typing import Optional

import click


class TableVaultError(Exception):
    """Base exception for TableVault errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(TableVaultError):
    """Raised when configuration is invalid or missing."""

    pass


class StoreError(TableVaultError):
    """Raised when the relational store rejects an operation."""

    pass


class SnapshotError(TableVaultError):
    """Raised when a snapshot file cannot be read, parsed or written."""

    pass


class SnapshotIntegrityError(SnapshotError):
    """Raised when a snapshot fails validation and the caller requires a valid one."""

    def __init__(self, message: str, issues: Optional[list] = None, **kwargs):
        self.issues = issues or []
        super().__init__(message, **kwargs)


class SafetyNetError(TableVaultError):
    """Raised when the pre-restore safety-net backup cannot be taken."""

    pass


class BackupLockError(TableVaultError):
    """Raised when another backup or restore holds the lock."""

    pass


class SchedulerError(TableVaultError):
    """Raised when scheduled backups cannot be installed or removed."""

    pass


class ErrorHandler:
    """Handles and formats errors for user-friendly display."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Handle and display error with appropriate formatting.

        Args:
            error: Exception to handle
            context: Optional context about when/where error occurred
        """
        if isinstance(error, TableVaultError):
            self._handle_tablevault_error(error, context)
        else:
            self._handle_generic_error(error, context)

    def _handle_tablevault_error(self, error: TableVaultError, context: Optional[str]) -> None:
        """Handle TableVault-specific errors."""
        click.echo(f"✗ {error.message}", err=True)

        if context:
            click.echo(f"Context: {context}", err=True)

        if error.details:
            click.echo(f"Details: {error.details}", err=True)

        issues = getattr(error, "issues", None)
        if issues:
            click.echo(format_validation_errors(issues), err=True)

        if error.suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in error.suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def _handle_generic_error(self, error: Exception, context: Optional[str]) -> None:
        """Handle generic Python exceptions."""
        error_type = type(error).__name__

        if isinstance(error, FileNotFoundError):
            message = f"File not found: {error}"
            suggestions = [
                "Check that the file path is correct",
                "Run 'tablevault backup list' to see available backups",
            ]
        elif isinstance(error, PermissionError):
            message = f"Permission denied: {error}"
            suggestions = [
                "Check file/directory permissions",
                "Try running with appropriate privileges",
            ]
        elif isinstance(error, ConnectionError):
            message = f"Connection failed: {error}"
            suggestions = [
                "Check that the database is reachable",
                "Verify the store URL in your configuration",
            ]
        else:
            message = f"{error_type}: {error}"
            suggestions = []

        click.echo(f"✗ {message}", err=True)

        if context:
            click.echo(f"Context: {context}", err=True)

        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Handle error and exit with specified code."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str, **kwargs) -> list:
    """
    Create contextual error suggestions based on error type and context.

    Args:
        error_type: Type of error
        **kwargs: Additional context information

    Returns:
        list: List of suggestion strings
    """
    suggestions = {
        "store_unreachable": [
            "Check that the database server is running",
            "Verify the store URL (store.url or TABLEVAULT_DATABASE_URL)",
            "Check network connectivity and credentials",
        ],
        "snapshot_corrupted": [
            "Run 'tablevault backup validate <file>' for a full report",
            "Restore from an older snapshot instead",
        ],
        "lock_held": [
            "Wait for the running backup or restore to finish",
            "Remove the lock file if no tablevault process is running",
        ],
        "configuration_invalid": [
            "Check YAML syntax in configuration file",
            "Verify all required fields are present",
            "Run 'tablevault config validate' for details",
        ],
        "safety_net_failed": [
            "Check free disk space in the backup directory",
            "Check that the live tables are readable",
        ],
    }

    result = list(suggestions.get(error_type, []))
    if error_type == "lock_held" and kwargs.get("lock_path"):
        result.append(f"Lock file: {kwargs['lock_path']}")
    return result


def format_validation_errors(errors: list) -> str:
    """
    Format validation errors for display.

    Args:
        errors: List of validation error messages

    Returns:
        str: Formatted error message
    """
    if not errors:
        return "No validation errors"

    if len(errors) == 1:
        return f"Validation error: {errors[0]}"

    formatted = "Validation errors:\n"
    for i, error in enumerate(errors, 1):
        formatted += f"  {i}. {error}\n"

    return formatted.strip()
