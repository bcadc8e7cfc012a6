"""Tests for the engine, the Alembic migration, and seed data."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from chatmeter.db import Base, get_engine
from chatmeter.db.models import Chat, ModelCatalogEntry, Plan
from chatmeter.db.seed import seed_defaults

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    return cfg


def test_migration_creates_every_model_table(tmp_path) -> None:
    db_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(_alembic_config(db_url), "head")

    engine = create_engine(db_url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names()) - {"alembic_version"}
        assert tables == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            columns = {column["name"] for column in inspector.get_columns(name)}
            assert columns == set(table.columns.keys()), name
        unique_names = {
            constraint["name"] for constraint in inspector.get_unique_constraints("daily_counters")
        }
        assert "uq_daily_counters_user_id" in unique_names
    finally:
        engine.dispose()


def test_migration_downgrade_removes_tables(tmp_path) -> None:
    db_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = _alembic_config(db_url)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(db_url)
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()


def test_seed_fills_empty_tables_once(tmp_path) -> None:
    db_url = f"sqlite:///{tmp_path / 'seeded.db'}"
    command.upgrade(_alembic_config(db_url), "head")
    engine = create_engine(db_url)
    factory = sessionmaker(bind=engine)

    try:
        with factory() as db:
            seed_defaults(db)
            seed_defaults(db)
            plans = {plan.name: plan for plan in db.query(Plan).all()}
            models = {model.model_key for model in db.query(ModelCatalogEntry).all()}
    finally:
        engine.dispose()

    assert set(plans) == {"Free", "Light", "Pro"}
    assert plans["Free"].requests_per_minute == 20
    assert models == {"chatgpt-5.3", "claude-sonnet-4", "openrouter-auto", "mock-echo"}


def test_sqlite_connections_use_wal_foreign_keys_and_busy_timeout(session_factory) -> None:
    with get_engine().connect() as conn:
        assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        assert conn.exec_driver_sql("PRAGMA busy_timeout").scalar() == 5000


def test_foreign_keys_reject_rows_for_unknown_user(db_session) -> None:
    db_session.add(Chat(user_id="no-such-user", title="orphan"))

    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
