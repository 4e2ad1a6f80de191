"""
Versioned schema migrations for SQLite.

Migrations are registered in an explicit Registry, keyed by lexicographically
sortable version strings, and applied or reverted one transaction at a time.
Applied versions are tracked in the `versions` table.
"""

from .engine import (
    Direction,
    MigrationEngine,
    MigrationError,
    MigrationRun,
    Plan,
    StatusEntry,
    TransactionEndedError,
    build_status,
    compute_plan,
    format_status,
    migrate,
    status,
)
from .registry import FLOOR_VERSION, Migration, Registry, RegistrationError, validate_migrations
from .store import AppliedVersion, VersionStore, VersionStoreError, connect, transaction

__version__ = "0.1.0"

__all__ = [
    "FLOOR_VERSION",
    "AppliedVersion",
    "Direction",
    "Migration",
    "MigrationEngine",
    "MigrationError",
    "MigrationRun",
    "Plan",
    "Registry",
    "RegistrationError",
    "StatusEntry",
    "TransactionEndedError",
    "VersionStore",
    "VersionStoreError",
    "build_status",
    "compute_plan",
    "connect",
    "format_status",
    "migrate",
    "status",
    "transaction",
    "validate_migrations",
]
