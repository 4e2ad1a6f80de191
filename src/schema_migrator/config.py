"""
Configuration management.

Configuration is read from a YAML file; environment variables override it:
- MIGRATOR_DATABASE_PATH
- MIGRATOR_MIGRATIONS_PACKAGE
- MIGRATOR_TARGET
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class MigratorConfig:
    """Migrator configuration."""

    # SQLite database to migrate
    database_path: Path = field(default_factory=lambda: Path("data/app.db"))
    # Importable package holding the migration modules
    migrations_package: str = "migrations"
    # Version to migrate to; empty means latest
    target: str = ""

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not str(self.database_path):
            errors.append("database_path is required")
        if not self.migrations_package:
            errors.append("migrations_package is required")
        elif not all(part.isidentifier() for part in self.migrations_package.split(".")):
            errors.append(f"migrations_package {self.migrations_package!r} is not a module path")

        return errors


def _scalar(data: dict, key: str, default: str) -> str:
    """Read a string setting; empty (null) values fall back to the default."""
    value = data.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        raise ConfigValidationError(f"{key} must be a single value, not {type(value).__name__}")
    return str(value)


def load_config(config_path: Path) -> MigratorConfig:
    """
    Load configuration from YAML file.

    A missing file yields the defaults (plus any environment overrides).

    Raises:
        ConfigValidationError: if the file isn't a mapping or values are invalid
    """
    if config_path.exists():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"{config_path} is not valid YAML: {e}") from e
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    config = MigratorConfig(
        database_path=Path(
            os.environ.get("MIGRATOR_DATABASE_PATH")
            or _scalar(data, "database_path", "data/app.db")
        ),
        migrations_package=os.environ.get("MIGRATOR_MIGRATIONS_PACKAGE")
        or _scalar(data, "migrations_package", "migrations"),
        target=os.environ.get("MIGRATOR_TARGET") or _scalar(data, "target", ""),
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# schema-migrator configuration
#
# Environment variables override these values:
#   MIGRATOR_DATABASE_PATH, MIGRATOR_MIGRATIONS_PACKAGE, MIGRATOR_TARGET

# SQLite database to migrate
database_path: data/app.db

# Importable package containing migration modules
# (each defines VERSION, NAME, upgrade(conn) and downgrade(conn))
migrations_package: migrations

# Version to migrate to; leave empty for the latest migration
target: ""
"""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(default_config)
