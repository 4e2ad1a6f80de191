"""
Migration registry.

A Registry maps version strings to migrations. Versions are compared as plain
strings, so the naming scheme must sort lexicographically in the intended
order (fixed-width timestamps such as 20200101T000000Z).

Every registry starts with a no-op floor migration whose version sorts before
all real versions; migrating down to it reverts everything.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from sqlite3 import Connection

logger = logging.getLogger(__name__)

MigrationAction = Callable[[Connection], object]

FLOOR_VERSION = "00010101T000000Z"
FLOOR_NAME = "nil"


class RegistrationError(Exception):
    """Raised when a migration is registered incorrectly.

    This always points at a mistake in migration authoring, not at a runtime
    condition, so nothing in this package catches it.
    """

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass(frozen=True)
class Migration:
    """A named pair of actions identified by a version string."""

    version: str
    name: str
    up: MigrationAction
    down: MigrationAction


def noop(conn: Connection) -> None:
    """Action that does nothing (used by the floor migration)."""
    return None


def _check(version: str, name: str, up, down) -> list[str]:
    errors: list[str] = []
    if not version:
        errors.append(f"migration {name!r}: version is required")
    if up is None or down is None:
        errors.append(f"migration {version!r}: up and down are both required")
    elif not callable(up) or not callable(down):
        errors.append(f"migration {version!r}: up and down must be callable")
    return errors


def validate_migrations(migrations: Iterable[Migration]) -> list[str]:
    """Validate a batch of migrations before registering them.

    Returns:
        List of problems found (empty if every migration can be registered)
    """
    errors: list[str] = []
    seen = {FLOOR_VERSION}

    for migration in migrations:
        errors.extend(_check(migration.version, migration.name, migration.up, migration.down))
        if migration.version in seen:
            errors.append(f"migration {migration.version!r} registered twice")
        seen.add(migration.version)

    return errors


class Registry:
    """
    In-memory mapping of version -> Migration.

    Built by the host application before the first run and passed to the
    engine. The engine freezes it; later registrations are rejected.
    """

    def __init__(self):
        self._migrations: dict[str, Migration] = {}
        self._frozen = False
        self.register(FLOOR_VERSION, FLOOR_NAME, noop, noop)

    @classmethod
    def from_migrations(cls, migrations: Iterable[Migration]) -> "Registry":
        """
        Build a registry from a batch of migrations.

        Raises:
            RegistrationError: listing every problem in the batch
        """
        migrations = list(migrations)
        errors = validate_migrations(migrations)
        if errors:
            raise RegistrationError(errors)

        registry = cls()
        for migration in migrations:
            registry.register(migration.version, migration.name, migration.up, migration.down)
        return registry

    def register(
        self,
        version: str,
        name: str,
        up: MigrationAction,
        down: MigrationAction,
    ) -> None:
        """
        Make a migration available under the given version.

        Raises:
            RegistrationError: if an action is missing, the version is taken,
                or the registry is frozen
        """
        if self._frozen:
            raise RegistrationError([f"migration {version!r}: registry is frozen"])

        errors = _check(version, name, up, down)
        if version in self._migrations:
            errors.append(f"migration {version!r} registered twice")
        if errors:
            raise RegistrationError(errors)

        self._migrations[version] = Migration(version=version, name=name, up=up, down=down)
        logger.debug(f"Registered migration {version}: {name}")

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, version: str) -> Migration:
        return self._migrations[version]

    def sorted_versions(self) -> list[str]:
        """All registered versions in ascending order."""
        return sorted(self._migrations)

    def latest_version(self) -> str:
        """The greatest registered version."""
        return max(self._migrations)

    def __contains__(self, version: object) -> bool:
        return version in self._migrations

    def __len__(self) -> int:
        return len(self._migrations)
