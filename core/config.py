"""Application configuration with environment-specific profiles.

Supports dev, staging, production and test environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    jwt_secret: str = "jwt-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 480
    log_level: str = "INFO"

    # HTTP surface
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    request_id_header_name: str = "X-Request-ID"
    app_base_url: str = "http://localhost:3000"

    # Cache / rate limiting
    redis_url: str = "redis://localhost:6379/0"
    cache_prefix: str = "coaching-cache"
    analytics_cache_seconds: int = 60
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    message_rate_limit: str = "60/minute"
    import_rate_limit: str = "10/minute"

    # External collaborators (empty url = disabled)
    email_api_url: str = ""
    email_api_key: str = ""
    email_from: str = "noreply@nextlevelcoaching.app"
    push_api_url: str = ""
    push_api_key: str = ""
    blob_api_url: str = ""
    blob_api_key: str = ""
    youtube_api_key: str = ""
    external_timeout_seconds: float = 10.0

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "jwt_expire_minutes": 1440,
    },
    "staging": {
        "log_level": "INFO",
        "jwt_expire_minutes": 480,
    },
    "production": {
        "log_level": "WARNING",
        "jwt_expire_minutes": 240,
        "analytics_cache_seconds": 300,
    },
    "test": {
        "log_level": "WARNING",
        "jwt_expire_minutes": 60,
        "rate_limit_enabled": False,
    },
}


def get_database_url() -> str:
    """Resolve database URL from the DATABASE_URL env var or a local default."""
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "postgresql+psycopg2://localhost:5432/coaching"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        jwt_secret=os.getenv("JWT_SECRET", "jwt-change-me"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", str(profile.get("jwt_expire_minutes", 480)))),
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        cors_origins=_env_list("CORS_ORIGINS", ["http://localhost:3000"]),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
        app_base_url=os.getenv("APP_BASE_URL", "http://localhost:3000"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        cache_prefix=os.getenv("CACHE_PREFIX", "coaching-cache"),
        analytics_cache_seconds=int(os.getenv("ANALYTICS_CACHE_SECONDS", str(profile.get("analytics_cache_seconds", 60)))),
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", bool(profile.get("rate_limit_enabled", True))),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        message_rate_limit=os.getenv("MESSAGE_RATE_LIMIT", "60/minute"),
        import_rate_limit=os.getenv("IMPORT_RATE_LIMIT", "10/minute"),
        email_api_url=os.getenv("EMAIL_API_URL", ""),
        email_api_key=os.getenv("EMAIL_API_KEY", ""),
        email_from=os.getenv("EMAIL_FROM", "noreply@nextlevelcoaching.app"),
        push_api_url=os.getenv("PUSH_API_URL", ""),
        push_api_key=os.getenv("PUSH_API_KEY", ""),
        blob_api_url=os.getenv("BLOB_API_URL", ""),
        blob_api_key=os.getenv("BLOB_API_KEY", ""),
        youtube_api_key=os.getenv("YOUTUBE_API_KEY", ""),
        external_timeout_seconds=float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "10")),
        default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", "50")),
        max_page_size=int(os.getenv("MAX_PAGE_SIZE", "200")),
    )
