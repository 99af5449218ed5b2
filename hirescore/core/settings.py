from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_USER_DATA_DIR = Path.home() / ".hirescore" / "data"
DEFAULT_DEV_DB_PATH = PROJECT_ROOT / "data" / "hirescore.db"

_WEAK_SECRETS = {
    "change-me",
    "secret",
    "jwt-secret",
    "my-secret-key",
    "CHANGE_ME_JWT_SECRET",
}


@dataclass(frozen=True)
class Settings:
    environment: str  # development, test, production, staging
    data_dir: Path
    database_url_async: str
    database_url_sync: str
    sql_echo: bool
    log_level: str
    log_json: bool
    log_file: str
    jwt_secret: str
    access_token_ttl_minutes: int
    scheduling_max_attempts: int
    scheduling_retry_backoff_ms: int
    db_pool_size: int
    db_max_overflow: int
    db_pool_timeout: int
    db_pool_recycle: int

    @property
    def is_sqlite(self) -> bool:
        return self.database_url_async.startswith("sqlite")


def load_env(path: Path | None = None) -> None:
    """Load key=value pairs from ``.env`` and ``.env.local`` into os.environ.

    ``.env.local`` may override ``.env``; variables already present in the
    shell environment are never overridden.
    """
    shell_keys = set(os.environ.keys())
    env_path = path or PROJECT_ROOT / ".env"
    if env_path.exists():
        _load_env_file(env_path, allow_override=False)
    if path is None:
        local_path = env_path.parent / ".env.local"
        if local_path.exists():
            _load_env_file(local_path, allow_override=True, protected_keys=shell_keys)


def _load_env_file(
    env_path: Path, allow_override: bool = False, protected_keys: set[str] | None = None
) -> None:
    protected = protected_keys or set()
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key or key in protected:
            continue
        if not allow_override and key in os.environ:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        os.environ[key] = value


def _get_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir and env_dir.strip():
        return Path(env_dir).expanduser()
    return DEFAULT_USER_DATA_DIR


def _normalize_sqlite_url(url: str, *, async_driver: bool) -> str:
    prefix = "sqlite+aiosqlite" if async_driver else "sqlite"
    if url.startswith("sqlite"):
        path = url.split("///", maxsplit=1)[-1]
        return f"{prefix}:///{path}"
    return url


def _sync_url_for(raw_db_url: str) -> str:
    if raw_db_url.startswith("sqlite"):
        return _normalize_sqlite_url(raw_db_url, async_driver=False)
    if raw_db_url.startswith("postgresql+asyncpg"):
        return raw_db_url.replace("+asyncpg", "")
    return raw_db_url


load_env()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment not in {"development", "test", "production", "staging"}:
        environment = "development"

    data_dir = _default_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)

    raw_db_url = (os.getenv("DATABASE_URL") or "").strip()
    if not raw_db_url:
        if environment == "development":
            DEFAULT_DEV_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
            raw_db_url = f"sqlite+aiosqlite:///{DEFAULT_DEV_DB_PATH}"
        else:
            raw_db_url = f"sqlite+aiosqlite:///{data_dir / 'hirescore.db'}"

    async_url = _normalize_sqlite_url(raw_db_url, async_driver=True)
    sync_url = _sync_url_for(raw_db_url)

    jwt_secret = os.getenv("JWT_SECRET", "").strip()
    if not jwt_secret:
        if environment == "production":
            raise ValueError("JWT_SECRET must be set in production")
        jwt_secret = "dev-only-" + "0" * 32
        logging.warning("JWT_SECRET is not set, using an insecure development secret")
    if jwt_secret in _WEAK_SECRETS or jwt_secret.lower() in _WEAK_SECRETS:
        raise ValueError(f"JWT_SECRET must be changed from default value '{jwt_secret}'")
    if len(jwt_secret) < 32:
        raise ValueError(
            f"JWT_SECRET must be at least 32 characters (current: {len(jwt_secret)})"
        )

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    log_file = os.getenv("LOG_FILE", "").strip()
    if not log_file:
        log_file = str(data_dir / "logs" / "app.log")

    return Settings(
        environment=environment,
        data_dir=data_dir,
        database_url_async=async_url,
        database_url_sync=sync_url,
        sql_echo=_get_bool("SQL_ECHO", default=False),
        log_level=log_level,
        log_json=_get_bool("LOG_JSON", default=False),
        log_file=log_file,
        jwt_secret=jwt_secret,
        access_token_ttl_minutes=_get_int("ACCESS_TOKEN_TTL_MINUTES", 60, minimum=1),
        scheduling_max_attempts=_get_int("SCHEDULING_MAX_ATTEMPTS", 3, minimum=1),
        scheduling_retry_backoff_ms=_get_int("SCHEDULING_RETRY_BACKOFF_MS", 25, minimum=0),
        db_pool_size=_get_int("DB_POOL_SIZE", 20, minimum=1),
        db_max_overflow=_get_int("DB_MAX_OVERFLOW", 10, minimum=0),
        db_pool_timeout=_get_int("DB_POOL_TIMEOUT", 30, minimum=1),
        db_pool_recycle=_get_int("DB_POOL_RECYCLE", 3600, minimum=60),
    )


__all__ = ["Settings", "get_settings", "load_env"]
