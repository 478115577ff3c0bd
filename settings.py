from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DB_PATH_ENV = "SENSOR_DB_PATH"
_BUSY_TIMEOUT_ENV = "SENSOR_DB_BUSY_TIMEOUT"
_TIMEZONE_ENV = "DASHBOARD_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    db_path: Optional[str]
    busy_timeout: float
    timezone: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_busy_timeout(default: float) -> float:
    value = os.getenv(_BUSY_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        db_path=_read_optional_env(_DB_PATH_ENV, "./sensor.db"),
        busy_timeout=_read_busy_timeout(5.0),
        timezone=_read_str_env(_TIMEZONE_ENV, "Europe/Rome"),
        log_level=_read_log_level("INFO"),
    )
