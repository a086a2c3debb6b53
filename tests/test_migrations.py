from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from core.models import Base

ROOT = Path(__file__).resolve().parents[1]
MIGRATION = ROOT / "alembic" / "versions" / "20261001_0001_initial.py"


def _alembic_config() -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    return cfg


def test_initial_migration_creates_every_model_table():
    text = MIGRATION.read_text(encoding="utf-8")
    for table in Base.metadata.tables:
        assert f'"{table}"' in text, table


def test_initial_migration_avoids_postgres_only_defaults():
    text = MIGRATION.read_text(encoding="utf-8")
    assert "now()" not in text
    assert "CURRENT_TIMESTAMP" in text


def test_upgrade_and_downgrade_on_sqlite(tmp_path, monkeypatch):
    url = f"sqlite+pysqlite:///{tmp_path / 'migrate.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    cfg = _alembic_config()

    command.upgrade(cfg, "head")
    engine = sa.create_engine(url)
    try:
        tables = set(sa.inspect(engine).get_table_names())
        assert set(Base.metadata.tables) <= tables
        assert "alembic_version" in tables

        columns = {c["name"] for c in sa.inspect(engine).get_columns("program_assignments")}
        assert {"start_date", "repetitions", "cycle", "progress"} <= columns
    finally:
        engine.dispose()

    command.downgrade(cfg, "base")
    engine = sa.create_engine(url)
    try:
        assert set(sa.inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
