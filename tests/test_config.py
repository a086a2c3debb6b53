"""Tests for configuration module."""

from __future__ import annotations

from core.config import Settings, _ENV_PROFILES, get_database_url, get_settings


def test_settings_dataclass():
    s = Settings(database_url="postgres://localhost/test")
    assert s.database_url == "postgres://localhost/test"
    assert s.app_env == "dev"
    assert s.jwt_secret == "jwt-change-me"
    assert s.jwt_algorithm == "HS256"
    assert s.default_page_size == 50
    assert s.message_rate_limit == "60/minute"


def test_settings_frozen():
    s = Settings(database_url="x")
    try:
        s.database_url = "y"
        assert False, "Should raise"
    except AttributeError:
        pass


def test_settings_env_flags():
    assert Settings(database_url="x", app_env="production").is_production is True
    assert Settings(database_url="x", app_env="dev").is_dev is True
    assert Settings(database_url="x", app_env="test").is_test is True


def test_get_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://from-env/db")
    assert get_database_url() == "postgres://from-env/db"


def test_get_database_url_default(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert "postgresql" in get_database_url()


def test_get_settings_applies_profile_and_overrides(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///x.db")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("ANALYTICS_CACHE_SECONDS", "5")
    get_settings.cache_clear()
    try:
        s = get_settings()
        assert s.app_env == "test"
        assert s.rate_limit_enabled is False
        assert s.jwt_expire_minutes == _ENV_PROFILES["test"]["jwt_expire_minutes"]
        assert s.cors_origins == ["http://a.test", "http://b.test"]
        assert s.analytics_cache_seconds == 5
    finally:
        get_settings.cache_clear()


def test_unknown_env_falls_back_to_dev_profile(monkeypatch):
    monkeypatch.setenv("APP_ENV", "nonsense")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    try:
        assert get_settings().log_level == _ENV_PROFILES["dev"]["log_level"]
    finally:
        get_settings.cache_clear()
