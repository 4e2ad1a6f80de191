"""
Test fixtures for migration tests.

Provides:
- three sample versions (A < B < C) that sort after the floor
- migration actions creating/dropping one table each
- helpers to inspect a migrated SQLite database
"""

VERSION_A = "20200101T000000Z"
VERSION_B = "20200201T000000Z"
VERSION_C = "20200301T000000Z"

# Source of a migration module, rendered with str.format
MIGRATION_MODULE = '''
VERSION = "{version}"
NAME = "{name}"


def upgrade(conn):
    conn.execute("CREATE TABLE {table} (id INTEGER PRIMARY KEY)")


def downgrade(conn):
    conn.execute("DROP TABLE {table}")
'''


def create_table(table: str):
    """Up-action creating an empty table."""

    def up(conn):
        conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY)")

    return up


def drop_table(table: str):
    """Down-action dropping a table."""

    def down(conn):
        conn.execute(f"DROP TABLE {table}")

    return down


def table_names(conn) -> set[str]:
    """Names of all tables in the database."""
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {row[0] for row in rows}


def recorded_versions(conn) -> list[str]:
    """Versions present in the bookkeeping table, ascending."""
    rows = conn.execute("SELECT version FROM versions ORDER BY version").fetchall()
    return [row[0] for row in rows]
