"""Alembic migrations build the same schema as the ORM models (SQLite file database)."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from autoflow.infrastructure.persistence import models  # noqa: F401
from autoflow.infrastructure.persistence.database import Base

MIGRATIONS = (
    Path(__file__).resolve().parents[2]
    / "autoflow"
    / "infrastructure"
    / "persistence"
    / "migrations"
)


@pytest.fixture
def database(tmp_path) -> tuple[Config, str]:
    """Alembic config pointed at a fresh database, plus a sync URL for inspection."""
    path = tmp_path / "migrated.db"
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS))
    config.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{path}")
    return config, f"sqlite:///{path}"


def _inspect(url: str):
    engine = create_engine(url)
    try:
        with engine.connect() as conn:
            inspector = inspect(conn)
            return {
                name: {
                    "columns": {c["name"] for c in inspector.get_columns(name)},
                    "indexes": {ix["name"] for ix in inspector.get_indexes(name)},
                    "foreign_keys": {
                        (fk["referred_table"], fk["options"].get("ondelete"))
                        for fk in inspector.get_foreign_keys(name)
                    },
                    "checks": {ck["name"] for ck in inspector.get_check_constraints(name)},
                }
                for name in inspector.get_table_names()
                if name != "alembic_version"
            }
    finally:
        engine.dispose()


def test_upgrade_head_matches_models(database) -> None:
    config, url = database

    command.upgrade(config, "head")

    schema = _inspect(url)
    assert set(schema) == set(Base.metadata.tables)
    for table in Base.metadata.sorted_tables:
        assert schema[table.name]["columns"] == {c.name for c in table.columns}, table.name
        assert schema[table.name]["indexes"] == {ix.name for ix in table.indexes}, table.name
    assert schema["execution_run"]["foreign_keys"] == {("workflow", "CASCADE")}
    assert schema["run_continuation"]["foreign_keys"] == {("execution_run", "CASCADE")}
    assert "execution_run_status_check" in schema["execution_run"]["checks"]
    assert "claimed_at" in schema["run_continuation"]["columns"]


def test_downgrade_removes_tables(database) -> None:
    config, url = database
    command.upgrade(config, "head")

    command.downgrade(config, "3f1c9a2b7d40")
    assert "claimed_at" not in _inspect(url)["run_continuation"]["columns"]

    command.downgrade(config, "base")
    assert _inspect(url) == {}
