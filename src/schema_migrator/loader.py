"""
Load migrations from a Python package.

Every module in the package whose name doesn't start with "_" is a migration
and must define:
- VERSION: str  (e.g. "20200101T000000Z")
- NAME: str
- upgrade(conn: Connection) -> None
- downgrade(conn: Connection) -> None

Modules are usually named {VERSION}_{name}.py, e.g.
20200101T000000Z_create_users.py.

upgrade/downgrade run inside a transaction opened by the engine. They must
not call conn.commit(), conn.rollback() or conn.executescript() (which
commits first); run statements one at a time with conn.execute().
"""

import importlib
import logging
from pathlib import Path

from .registry import Migration, Registry, RegistrationError, validate_migrations

logger = logging.getLogger(__name__)


def discover_migrations(package: str) -> tuple[list[Migration], list[str]]:
    """
    Import every migration module of a package.

    Returns:
        (migrations sorted by version, list of problems found)
    """
    migrations: list[Migration] = []
    errors: list[str] = []

    try:
        pkg = importlib.import_module(package)
    except ImportError as e:
        return [], [f"cannot import migrations package {package!r}: {e}"]

    if getattr(pkg, "__file__", None) is None:
        return [], [f"{package!r} is not a regular package"]

    for py_file in sorted(Path(pkg.__file__).parent.glob("*.py")):
        module_name = py_file.stem
        if module_name.startswith("_"):
            continue

        full_module = f"{package}.{module_name}"
        try:
            module = importlib.import_module(full_module)
        except Exception as e:
            errors.append(f"failed to import {full_module}: {e}")
            continue

        missing = [
            attr for attr in ("VERSION", "NAME", "upgrade", "downgrade") if not hasattr(module, attr)
        ]
        if missing:
            errors.append(f"{full_module} is missing {', '.join(missing)}")
            continue

        migrations.append(
            Migration(
                version=str(module.VERSION),
                name=str(module.NAME),
                up=module.upgrade,
                down=module.downgrade,
            )
        )

    logger.debug(f"Discovered {len(migrations)} migrations in {package}")
    return sorted(migrations, key=lambda m: m.version), errors


def load_registry(package: str) -> Registry:
    """
    Build a registry from a migrations package.

    Raises:
        RegistrationError: listing every problem found while loading
    """
    migrations, errors = discover_migrations(package)
    errors.extend(validate_migrations(migrations))
    if errors:
        raise RegistrationError(errors)
    return Registry.from_migrations(migrations)
