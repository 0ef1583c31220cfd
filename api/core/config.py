"""
Environment-driven settings.

Values are read from `os.environ` on every call so tests can tweak them with
`monkeypatch.setenv`. `load_env()` pulls a dotenv file into the environment
once at startup; real environment variables always win.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)

_ENV_FILES = {
    "development": ".env",
    "test": ".env.test",
    "production": ".env.production",
}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def app_env() -> str:
    return os.environ.get("APP_ENV", "development").strip().lower() or "development"


def env_file() -> Path:
    # Unknown environments fall back to the development file.
    return PROJECT_ROOT / _ENV_FILES.get(app_env(), ".env")


def load_env() -> bool:
    """
    Load the dotenv file for the current APP_ENV. True when it set at least one variable.
    """
    path = env_file()
    loaded = load_dotenv(path, override=False)
    logger.info("env_loaded app_env=%s file=%s found=%s", app_env(), path.name, loaded)
    return loaded


def database_url() -> str:
    return os.environ.get("DATABASE_URL", "").strip()


def db_pool_min_size() -> int:
    return max(0, _env_int("DB_POOL_MIN_SIZE", 1))


def db_pool_max_size() -> int:
    return max(1, db_pool_min_size(), _env_int("DB_POOL_MAX_SIZE", 5))


def db_command_timeout_s() -> float:
    return _env_float("DB_COMMAND_TIMEOUT_S", 30.0)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_allow_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def host() -> str:
    return os.environ.get("HOST", "0.0.0.0").strip() or "0.0.0.0"


def port() -> int:
    return _env_int("PORT", 5001)
