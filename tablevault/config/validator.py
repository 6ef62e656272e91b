"""Configuration validation for TableVault."""

from typing import Any, Dict, List

import jsonschema
import yaml

from tablevault.utils.errors import ConfigurationError

from .schemas import CONFIG_SCHEMA


class ConfigValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(
            f"Configuration validation failed: {'; '.join(errors)}",
            suggestions=["Run 'tablevault config validate' for details"],
        )


class ConfigValidator:
    """Validates TableVault configuration files."""

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate a TableVault configuration.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        errors = []

        validator = jsonschema.Draft7Validator(CONFIG_SCHEMA)
        for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            location = ".".join(str(part) for part in error.path)
            if location:
                errors.append(f"Schema validation failed at '{location}': {error.message}")
            else:
                errors.append(f"Schema validation failed: {error.message}")

        if errors:
            return errors

        backup = config.get("backup") or {}
        if "tables" in backup:
            errors.extend(self._validate_tables(backup["tables"]))

        if "schedule" in backup:
            errors.extend(self._validate_schedule(backup["schedule"]))

        return errors

    def validate_config_file(self, file_path: str) -> List[str]:
        """
        Validate configuration file.

        Args:
            file_path: Path to configuration file

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        try:
            with open(file_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            return [f"Configuration file not found: {file_path}"]
        except yaml.YAMLError as e:
            return [f"YAML parsing error: {e}"]
        except OSError as e:
            return [f"Error reading configuration file: {e}"]

        if config is None:
            return ["Configuration file is empty"]

        if not isinstance(config, dict):
            return ["Configuration file must contain a mapping"]

        return self.validate_config(config)

    def _validate_tables(self, tables: List[Dict[str, Any]]) -> List[str]:
        """Validate table definitions beyond the schema."""
        errors = []

        if not tables:
            errors.append("At least one table must be configured")
            return errors

        seen = set()
        for table in tables:
            name = table["name"]
            if name in seen:
                errors.append(f"Table configured more than once: {name}")
            seen.add(name)

        return errors

    def _validate_schedule(self, schedule: str) -> List[str]:
        """Validate cron expression shape."""
        fields = schedule.split()
        if len(fields) != 5:
            return [f"Schedule must be a 5-field cron expression: {schedule!r}"]
        return []
