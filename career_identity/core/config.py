from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    identity_db_path: str
    usage_log_enabled: bool
    usage_log_db_path: str
    usage_log_retention_days: int
    embedding_provider: str
    embedding_model: str
    local_embedding_model: str
    simple_embedding_dimension: int
    max_upload_bytes: int
    ticker_interval_s: float


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    identity_db_path=_get_env("IDENTITY_DB_PATH", "data/identity.db") or "data/identity.db",
    usage_log_enabled=_get_env_bool("USAGE_LOG_ENABLED", True),
    usage_log_db_path=_get_env("USAGE_LOG_DB_PATH", "data/ai_usage.db") or "data/ai_usage.db",
    usage_log_retention_days=_get_env_int("USAGE_LOG_RETENTION_DAYS", 90),
    embedding_provider=(_get_env("EMBEDDING_PROVIDER", "openai") or "openai").strip().lower(),
    embedding_model=_get_env("EMBEDDING_MODEL", "text-embedding-3-small") or "text-embedding-3-small",
    local_embedding_model=_get_env("LOCAL_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
    or "sentence-transformers/all-MiniLM-L6-v2",
    simple_embedding_dimension=_get_env_int("SIMPLE_EMBEDDING_DIMENSION", 256),
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
    ticker_interval_s=_get_env_float("TICKER_INTERVAL_S", 2.0),
)

if settings.embedding_provider not in {"openai", "local", "simple"}:
    raise RuntimeError("EMBEDDING_PROVIDER must be one of 'openai', 'local' or 'simple'.")
