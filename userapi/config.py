"""
Central configuration loader.
Reads from environment variables (via .env) with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Load .env from repo root (if present)
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env")


def _get(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    val = os.getenv(key, default)
    if required and not val:
        raise EnvironmentError(f"Missing required environment variable: {key}")
    return val


def _get_float(key: str, default: float) -> float:
    raw = _get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise EnvironmentError(f"Invalid number for {key}: {raw!r}") from None


def _get_int(key: str, default: int) -> int:
    raw = _get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise EnvironmentError(f"Invalid integer for {key}: {raw!r}") from None


# ---------------------------------------------------------------------------
# Database config
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DatabaseConfig:
    path: Path
    busy_timeout: float  # seconds SQLite waits on a locked database


def get_db_config() -> DatabaseConfig:
    raw_path = _get("USERAPI_DB_PATH")
    return DatabaseConfig(
        path=Path(raw_path) if raw_path else get_db_path(),
        busy_timeout=_get_float("USERAPI_DB_BUSY_TIMEOUT", 5.0),
    )


# ---------------------------------------------------------------------------
# HTTP server config
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    reload: bool
    request_timeout: float
    log_level: str


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=_get("SERVER_HOST", default="0.0.0.0"),  # type: ignore[arg-type]
        port=_get_int("SERVER_PORT", 8000),
        reload=_get("SERVER_RELOAD", default="false").lower() in ("1", "true", "yes"),  # type: ignore[union-attr]
        request_timeout=_get_float("REQUEST_TIMEOUT_SECONDS", 10.0),
        log_level=_get("LOG_LEVEL", default="INFO").upper(),  # type: ignore[union-attr]
    )


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
def get_repo_root() -> Path:
    return _REPO_ROOT


def get_db_path() -> Path:
    return _REPO_ROOT / "data" / "app.db"
