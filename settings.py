from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_BASE_URL_ENV = "AIRKOREA_URL"
_TIMEOUT_ENV = "AIRKOREA_TIMEOUT"
_TIMEZONE_ENV = "AIRKOREA_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_BASE_URL = "http://m.airkorea.or.kr"
DEFAULT_TIMEOUT = 10.0
DEFAULT_TIMEZONE = "Asia/Seoul"


@dataclass(frozen=True)
class Settings:
    base_url: str
    request_timeout: float
    station_timezone: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_timeout(default: float) -> float:
    value = os.getenv(_TIMEOUT_ENV)
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


def _read_timezone(default: str) -> str:
    candidate = _read_str_env(_TIMEZONE_ENV, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return default
    return candidate


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
        base_url=_read_str_env(_BASE_URL_ENV, DEFAULT_BASE_URL).rstrip("/"),
        request_timeout=_read_timeout(DEFAULT_TIMEOUT),
        station_timezone=_read_timezone(DEFAULT_TIMEZONE),
        log_level=_read_log_level("INFO"),
    )
