"""
Migration engine.

Computes which registered migrations to run, and in which direction, to move
the database from its current version to a target version:

- UP:   every version v with current < v <= target, ascending
- DOWN: every version v with target < v <= current, descending

Each migration runs in its own transaction together with its bookkeeping
row. The first failure rolls back that migration and stops the run; earlier
migrations of the same run stay committed.
"""

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .registry import FLOOR_VERSION, Registry
from .store import VersionStore, transaction

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Direction of a migration run."""

    UP = "UP"
    DOWN = "DOWN"


class MigrationError(Exception):
    """Raised when a migration (or its bookkeeping/commit) fails."""

    def __init__(self, version: str, direction: Direction, cause: Exception):
        self.version = version
        self.direction = direction
        self.cause = cause
        action = "applying" if direction == Direction.UP else "reverting"
        super().__init__(f"Error {action} migration {version}: {cause}")


class TransactionEndedError(Exception):
    """Raised when a migration body commits or rolls back the engine's transaction."""

    pass


@dataclass(frozen=True)
class Plan:
    """Ordered versions to execute in one run."""

    direction: Direction
    versions: tuple[str, ...]
    current: str
    target: str

    @property
    def is_empty(self) -> bool:
        return not self.versions


@dataclass
class MigrationRun:
    """Outcome of a completed migrate() call."""

    direction: Direction
    current: str | None
    target: str
    applied: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StatusEntry:
    version: str
    name: str
    applied: bool


def compute_plan(registered_versions: Iterable[str], current: str, target: str) -> Plan:
    """
    Select and order the versions needed to go from current to target.

    Args:
        registered_versions: All registered versions (any order)
        current: Greatest applied version
        target: Requested version; empty means the latest registered version

    Returns:
        Plan with direction and versions in execution order
    """
    versions = sorted(registered_versions)
    if not target and versions:
        target = versions[-1]

    if current > target:
        selected = [v for v in reversed(versions) if target < v <= current]
        return Plan(Direction.DOWN, tuple(selected), current, target)

    selected = [v for v in versions if current < v <= target]
    return Plan(Direction.UP, tuple(selected), current, target)


def build_status(registry: Registry, applied: Iterable[str]) -> list[StatusEntry]:
    """Mark each registered version as applied if it appears in applied."""
    applied = set(applied)
    return [
        StatusEntry(version=version, name=registry.get(version).name, applied=version in applied)
        for version in registry.sorted_versions()
    ]


def format_status(entries: Sequence[StatusEntry]) -> str:
    """Render status entries as a checklist, one migration per line."""
    lines = []
    for entry in entries:
        mark = "x" if entry.applied else " "
        lines.append(f"[{mark}] {entry.version} {entry.name}")
    return "\n".join(lines)


class MigrationEngine:
    """
    Applies or reverts registered migrations against one database.

    The engine keeps no state between calls; the current version is read
    from the database every time.
    """

    def __init__(self, conn: sqlite3.Connection, registry: Registry):
        self.conn = conn
        self.registry = registry
        self.store = VersionStore(conn)

    def migrate(self, target: str = "") -> MigrationRun:
        """
        Bring the database to the target version.

        Args:
            target: Version to reach; empty means the latest registered one

        Returns:
            MigrationRun listing the executed versions

        Raises:
            VersionStoreError: if the bookkeeping table can't be created or read
            MigrationError: if a migration fails (the run stops there)
        """
        self.registry.freeze()
        self.store.ensure_schema()

        recorded = self.store.current_version()
        # No rows: plan from the floor so it is never selected itself
        current = recorded if recorded is not None else FLOOR_VERSION

        if target and target not in self.registry:
            logger.warning(f"Target version {target} is not registered")

        plan = compute_plan(self.registry.sorted_versions(), current, target)
        logger.info(
            f"Current version: {recorded or 'none'}, target: {plan.target} "
            f"({plan.direction.value})"
        )

        run = MigrationRun(direction=plan.direction, current=recorded, target=plan.target)
        if plan.is_empty:
            logger.info("No pending migrations")
            return run

        run.applied = self.execute_plan(plan)
        logger.info(f"Executed {len(run.applied)} migrations: {run.applied}")
        return run

    def execute_plan(self, plan: Plan) -> list[str]:
        """
        Run each planned migration in its own transaction.

        Returns:
            Versions executed, in plan order
        """
        executed = []
        for version in plan.versions:
            self._execute(version, plan.direction)
            executed.append(version)
        return executed

    def _execute(self, version: str, direction: Direction) -> None:
        migration = self.registry.get(version)
        verb = "Applying" if direction == Direction.UP else "Reverting"
        logger.info(f"{verb} migration {version}: {migration.name}")

        try:
            with transaction(self.conn) as tx:
                if direction == Direction.UP:
                    self._run_action(migration.up, tx, version)
                    self.store.record_applied(version, migration.name)
                else:
                    self._run_action(migration.down, tx, version)
                    self.store.record_reverted(version)
        except Exception as e:
            logger.error(f"Migration {version} failed: {e}")
            raise MigrationError(version, direction, e) from e

        logger.debug(f"Migration {version} committed")

    def _run_action(self, action, tx: sqlite3.Connection, version: str) -> None:
        # The body must leave the transaction open for the bookkeeping row
        try:
            action(tx)
        except Exception as e:
            if not tx.in_transaction:
                raise TransactionEndedError(
                    f"Migration {version} failed after ending its transaction; "
                    "statements before that point stay committed"
                ) from e
            raise

        if not tx.in_transaction:
            raise TransactionEndedError(
                f"Migration {version} ended its transaction (commit or executescript)"
            )

    def status(self) -> list[StatusEntry]:
        """
        Report every registered migration and whether it is applied.

        Read-only: a database without the versions table has nothing applied.
        """
        self.registry.freeze()
        applied: set[str] = set()
        if self.store.table_exists():
            applied = {record.version for record in self.store.list_applied()}

        return build_status(self.registry, applied)


def migrate(conn: sqlite3.Connection, registry: Registry, target: str = "") -> MigrationRun:
    """Migrate the database to target (empty means latest)."""
    return MigrationEngine(conn, registry).migrate(target)


def status(conn: sqlite3.Connection, registry: Registry) -> list[StatusEntry]:
    """List registered migrations with their applied state."""
    return MigrationEngine(conn, registry).status()
