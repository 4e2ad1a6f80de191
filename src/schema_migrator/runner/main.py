"""
CLI main entry point.
"""

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from ..config import ConfigValidationError, MigratorConfig, create_default_config, load_config
from ..engine import Direction, MigrationEngine, MigrationError, build_status, format_status
from ..loader import load_registry
from ..registry import RegistrationError
from ..store import VersionStoreError, connect

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="schema-migrator",
        description="Apply or revert versioned schema migrations",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("migrator.yaml"),
        help="Path to config file (default: migrator.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--database",
        type=Path,
        help="SQLite database to migrate (overrides config)",
    )
    parser.add_argument(
        "--package",
        type=str,
        help="Package containing migration modules (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # migrate command
    migrate_parser = subparsers.add_parser("migrate", help="Migrate the database to a version")
    migrate_parser.add_argument(
        "--target",
        type=str,
        default=None,
        help="Version to migrate to (default: latest registered migration)",
    )

    # status command
    subparsers.add_parser("status", help="Show registered migrations and whether they are applied")

    # init command
    subparsers.add_parser("init", help="Write a default config file")

    return parser


def _prepend_sys_path(path: Path) -> None:
    """Make the migrations package importable from the config directory."""
    entry = str(path.resolve())
    if entry not in sys.path:
        sys.path.insert(0, entry)


def cmd_migrate(config: MigratorConfig, target: str) -> int:
    """Migrate the database to target (empty means latest)."""
    registry = load_registry(config.migrations_package)

    conn = connect(config.database_path)
    try:
        run = MigrationEngine(conn, registry).migrate(target)
    finally:
        conn.close()

    if not run.applied:
        print(f"✓ Database already at {run.target}")
        return 0

    verb = "Applied" if run.direction == Direction.UP else "Reverted"
    for version in run.applied:
        print(f"  {verb} {version} {registry.get(version).name}")
    print(f"\n✓ {verb} {len(run.applied)} migration(s), now at {run.target}")
    return 0


def cmd_status(config: MigratorConfig) -> int:
    """Show migration status."""
    registry = load_registry(config.migrations_package)

    if not config.database_path.exists():
        logger.info(f"Database {config.database_path} does not exist yet")
        entries = build_status(registry, [])
    else:
        conn = connect(config.database_path, read_only=True)
        try:
            entries = MigrationEngine(conn, registry).status()
        finally:
            conn.close()

    print(format_status(entries))
    return 0


def cmd_init(config_path: Path) -> int:
    """Write a default config file unless one exists."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1

    create_default_config(config_path)
    print(f"✓ Wrote {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init":
        return cmd_init(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except (ConfigValidationError, OSError, ValueError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    if parsed.database is not None:
        config.database_path = parsed.database
    if parsed.package:
        config.migrations_package = parsed.package

    _prepend_sys_path(parsed.config.parent)

    # Route to command
    try:
        if parsed.command == "migrate":
            target = parsed.target if parsed.target is not None else config.target
            return cmd_migrate(config, target)
        elif parsed.command == "status":
            return cmd_status(config)
    except RegistrationError as e:
        logger.error(f"Invalid migrations: {e}")
        return 1
    except (VersionStoreError, MigrationError, sqlite3.Error) as e:
        logger.error(str(e))
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
