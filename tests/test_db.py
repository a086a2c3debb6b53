from __future__ import annotations

import pytest
from sqlalchemy import func, select

from core.config import get_settings
from core.db import get_engine, get_query_stats, reset_engine, session_scope
from core.models import Base, Client, DrillCompletion, Event, Message, Notification, ProgramAssignment, User


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'db_test.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())
    yield
    reset_engine()
    get_settings.cache_clear()


def test_session_scope_commits_on_success(sqlite_db):
    with session_scope() as s:
        s.add(User(id="u1", email="u1@example.com", role="COACH"))
    with session_scope() as s:
        assert s.get(User, "u1") is not None


def test_session_scope_rolls_back_on_error(sqlite_db):
    with pytest.raises(RuntimeError):
        with session_scope() as s:
            s.add(User(id="u2", email="u2@example.com"))
            s.flush()
            raise RuntimeError("boom")
    with session_scope() as s:
        assert s.get(User, "u2") is None


def test_sqlite_enforces_foreign_keys(sqlite_db):
    from sqlalchemy.exc import IntegrityError

    with pytest.raises(IntegrityError):
        with session_scope() as s:
            s.add(Client(coach_id="missing-coach", name="Orphan"))


def test_query_stats_track_executed_statements(sqlite_db):
    before = get_query_stats().total
    with session_scope() as s:
        for _ in range(3):
            s.execute(select(func.count(User.id))).scalar_one()
    stats = get_query_stats()
    assert stats.total >= min(before + 3, 1000)
    assert stats.p95_ms >= stats.p50_ms >= 0


def test_seed_demo_is_idempotent_and_silent(sqlite_db):
    from db.seed import DEMO_COACH_ID, seed_demo

    with session_scope() as s:
        first = seed_demo(s)
    with session_scope() as s:
        second = seed_demo(s)

    assert first == second
    with session_scope() as s:
        assert s.execute(select(func.count(Client.id)).where(Client.coach_id == DEMO_COACH_ID)).scalar_one() == 2
        assert s.execute(select(func.count(ProgramAssignment.id))).scalar_one() == 2
        assert s.execute(select(func.count(Event.id))).scalar_one() == 1
        assert s.execute(select(func.count(DrillCompletion.id))).scalar_one() == 0
        # welcome messages and assignment notices are stored, only delivery is skipped
        assert s.execute(select(func.count(Message.id))).scalar_one() == 2
        assert s.execute(select(func.count(Notification.id))).scalar_one() >= 2
