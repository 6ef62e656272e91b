"""Configuration management for TableVault."""

import logging
import os
from typing import Any, Dict, Optional

import yaml
from jinja2 import Environment, FileSystemLoader

from .settings import DEFAULT_TABLES, TableVaultConfig
from .validator import ConfigValidationError, ConfigValidator

CONFIG_FILENAME = "tablevault.yml"

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages TableVault configuration files."""

    def __init__(self, path: Optional[str] = None, config_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            path: Optional working directory (defaults to current directory)
            config_file: Optional explicit configuration file
        """
        self.path = path or os.getcwd()
        self.config_file = config_file
        self.validator = ConfigValidator()
        self._config_cache: Dict[str, TableVaultConfig] = {}

        # Setup Jinja2 for template rendering
        templates_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
        self.jinja_env = Environment(loader=FileSystemLoader(templates_dir), trim_blocks=True, lstrip_blocks=True)

    def get_config_path(self) -> Optional[str]:
        """
        Get path to the configuration file in effect.

        Resolution order: explicit file, ``$TABLEVAULT_CONFIG``, ``tablevault.yml``
        in the working directory.

        Returns:
            Optional[str]: Path to config file or None if there is none
        """
        if self.config_file:
            return self.config_file

        env_path = os.environ.get("TABLEVAULT_CONFIG")
        if env_path:
            return env_path

        default_path = os.path.join(self.path, CONFIG_FILENAME)
        if os.path.exists(default_path):
            return default_path

        return None

    def load_raw_config(self) -> Dict[str, Any]:
        """
        Load the configuration mapping without validation.

        Raises:
            FileNotFoundError: If an explicitly requested config file doesn't exist
            ConfigValidationError: If YAML parsing fails
        """
        config_path = self.get_config_path()
        if not config_path:
            return {}

        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigValidationError([f"Invalid YAML in {config_path}: {e}"])

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ConfigValidationError([f"Configuration in {config_path} must be a mapping"])

        return config

    def load_config(self, validate: bool = True) -> TableVaultConfig:
        """
        Load configuration for the current directory.

        Built-in defaults are used when no configuration file exists. Environment
        overrides are applied last.

        Args:
            validate: Whether to validate the configuration

        Returns:
            TableVaultConfig: Loaded configuration

        Raises:
            ConfigValidationError: If validation fails
            FileNotFoundError: If an explicit config file doesn't exist
        """
        config_path = self.get_config_path() or "<defaults>"

        if config_path in self._config_cache:
            return self._config_cache[config_path]

        raw = self.load_raw_config()

        if validate:
            errors = self.validator.validate_config(raw)
            if errors:
                raise ConfigValidationError(errors)

        config = TableVaultConfig.from_dict(raw)
        self._apply_environment_overrides(config)

        logger.debug("Loaded configuration from %s", config_path)

        self._config_cache[config_path] = config
        return config

    def validate_config(self, config: Dict[str, Any]) -> list:
        """Validate a configuration mapping and return the list of errors."""
        return self.validator.validate_config(config)

    def _apply_environment_overrides(self, config: TableVaultConfig) -> None:
        """Apply TABLEVAULT_* environment variables on top of file values."""
        database_url = os.environ.get("TABLEVAULT_DATABASE_URL")
        if database_url:
            config.store.url = database_url

        backup_dir = os.environ.get("TABLEVAULT_BACKUP_DIR")
        if backup_dir:
            config.backup.directory = backup_dir

        max_backups = os.environ.get("TABLEVAULT_MAX_BACKUPS")
        if max_backups:
            try:
                value = int(max_backups)
            except ValueError:
                raise ConfigValidationError([f"TABLEVAULT_MAX_BACKUPS must be an integer: {max_backups!r}"])
            if value < 0:
                raise ConfigValidationError([f"TABLEVAULT_MAX_BACKUPS must not be negative: {value}"])
            config.backup.max_backup_count = value

    def render_default_config(self, template_vars: Optional[Dict[str, Any]] = None) -> str:
        """
        Render the default configuration file from its template.

        Args:
            template_vars: Variables for template rendering

        Returns:
            str: Rendered YAML text
        """
        variables = {
            "version": "1.0.0",
            "store_url": "sqlite:///tablevault.db",
            "backup_dir": "backups",
            "max_backup_count": 10,
            "tables": DEFAULT_TABLES,
        }
        variables.update(template_vars or {})

        template = self.jinja_env.get_template("tablevault.yml.j2")
        return template.render(**variables)

    def initialize_config(self, force: bool = False, template_vars: Optional[Dict[str, Any]] = None) -> str:
        """
        Write a default configuration file into the working directory.

        Args:
            force: Overwrite an existing file
            template_vars: Variables for template rendering

        Returns:
            str: Path to created configuration file
        """
        config_path = self.config_file or os.path.join(self.path, CONFIG_FILENAME)

        if os.path.exists(config_path) and not force:
            raise FileExistsError(f"Configuration file already exists: {config_path}")

        content = self.render_default_config(template_vars)

        errors = self.validator.validate_config(yaml.safe_load(content))
        if errors:
            raise ConfigValidationError(errors)

        directory = os.path.dirname(config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            f.write(content)

        self.clear_cache()
        return config_path

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._config_cache.clear()
