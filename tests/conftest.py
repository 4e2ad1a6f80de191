"""Test fixtures and utilities."""

import textwrap
from pathlib import Path

import pytest

from fixtures import (
    MIGRATION_MODULE,
    VERSION_A,
    VERSION_B,
    VERSION_C,
    create_table,
    drop_table,
)
from schema_migrator.registry import Registry
from schema_migrator.store import connect


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_migrations.db"


@pytest.fixture
def conn(temp_db):
    """Open connection to the temporary database."""
    conn = connect(temp_db)
    yield conn
    conn.close()


@pytest.fixture
def registry() -> Registry:
    """Registry with three migrations, each creating one table."""
    registry = Registry()
    registry.register(VERSION_A, "create_users", create_table("users"), drop_table("users"))
    registry.register(VERSION_B, "create_posts", create_table("posts"), drop_table("posts"))
    registry.register(VERSION_C, "create_tags", create_table("tags"), drop_table("tags"))
    return registry


@pytest.fixture
def make_migrations_package(tmp_path, monkeypatch):
    """Factory writing an importable migrations package under tmp_path.

    Takes the package name and a mapping of module name -> source, where a
    source may also be a (version, name, table) tuple rendered with
    MIGRATION_MODULE.
    """

    def _make(package: str, modules: dict) -> Path:
        pkg_dir = tmp_path / package
        pkg_dir.mkdir()
        (pkg_dir / "__init__.py").write_text("")
        for module_name, source in modules.items():
            if isinstance(source, tuple):
                version, name, table = source
                source = MIGRATION_MODULE.format(version=version, name=name, table=table)
            (pkg_dir / f"{module_name}.py").write_text(textwrap.dedent(source))
        monkeypatch.syspath_prepend(str(tmp_path))
        return pkg_dir

    return _make
