from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

_EXPIRY_UNITS = {"h": 3600, "d": 86400, "y": 365 * 86400}
_ALLOWED_EXPIRIES = {"1h", "24h", "7d", "30d", "1y"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/taskboard.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET: HMAC secret used to sign access tokens
    - JWT_EXPIRES_IN: one of 1h, 24h, 7d, 30d, 1y or a number of seconds (default: 30d)
    - LOG_LEVEL: root log level (default: INFO)
    - LOGFIRE_TOKEN: optional Pydantic Logfire write token
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/taskboard.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    jwt_secret: str = "dev-secret-change-me"
    jwt_expires_seconds: int = 30 * 86400
    log_level: str = "INFO"
    logfire_token: Optional[str] = None


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def parse_expires_in(value: str, default: int = 30 * 86400) -> int:
    """
    Convert a token lifetime setting into seconds.

    Accepts the named lifetimes 1h, 24h, 7d, 30d and 1y, or a plain positive
    integer number of seconds. Anything else yields the default (30 days).
    """
    v = value.strip().lower()
    if v.isdigit() and int(v) > 0:
        return int(v)
    if v in _ALLOWED_EXPIRIES:
        return int(v[:-1]) * _EXPIRY_UNITS[v[-1]]
    return default


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/taskboard.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        jwt_secret=_get_env("JWT_SECRET", "dev-secret-change-me"),
        jwt_expires_seconds=parse_expires_in(_get_env("JWT_EXPIRES_IN", "30d")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        logfire_token=os.getenv("LOGFIRE_TOKEN") or None,
    )
