from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _purge_api_modules() -> None:
    # limiter and cache decorators bind settings at import time
    for name in list(sys.modules):
        if name == "api" or name.startswith("api."):
            sys.modules.pop(name, None)


class Seed:
    """Direct database writes for arranging API tests."""

    def user(self, user_id: str, role: str | None = "COACH", *, name: str | None = None, is_admin: bool = False) -> str:
        from core.db import session_scope
        from core.models import User

        with session_scope() as s:
            s.add(User(id=user_id, email=f"{user_id}@example.com", name=name or user_id.title(), role=role, is_admin=is_admin))
        return user_id

    def client(self, coach_id: str | None, name: str = "Client", *, user_id: str | None = None) -> int:
        from core.db import session_scope
        from core.models import Client

        with session_scope() as s:
            row = Client(coach_id=coach_id, name=name, user_id=user_id, email=f"{user_id}@example.com" if user_id else None)
            s.add(row)
            s.flush()
            return row.id

    def lesson(self, coach_id: str, client_id: int, *, days_ahead: int = 3, title: str = "Lesson") -> int:
        from core.db import session_scope
        from core.models import Event

        starts = datetime.utcnow().replace(microsecond=0) + timedelta(days=days_ahead)
        with session_scope() as s:
            row = Event(
                coach_id=coach_id,
                client_id=client_id,
                title=title,
                date=starts,
                end_time=starts + timedelta(hours=1),
                status="CONFIRMED",
            )
            s.add(row)
            s.flush()
            return row.id

    def headers(self, user_id: str) -> dict[str, str]:
        from api.auth import create_access_token

        return {"Authorization": f"Bearer {create_access_token(user_id, email=f'{user_id}@example.com')}"}


@pytest.fixture
def seed() -> Seed:
    return Seed()


@pytest.fixture
def api(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "api_test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6399/15")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:5173")
    monkeypatch.setenv("JWT_SECRET", "api-test-secret")
    for key in ("EMAIL_API_URL", "PUSH_API_URL", "BLOB_API_URL", "YOUTUBE_API_KEY"):
        monkeypatch.delenv(key, raising=False)

    from core.config import get_settings
    from core.db import get_engine, reset_engine
    from core.models import Base

    get_settings.cache_clear()
    reset_engine()
    _purge_api_modules()
    Base.metadata.create_all(bind=get_engine())

    from api.main import create_app

    with TestClient(create_app()) as client:
        yield client

    reset_engine()
    get_settings.cache_clear()
