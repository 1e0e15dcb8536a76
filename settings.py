from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from errors import ConfigurationError


_DATABASE_URL_ENV = "DISKFREE_DATABASE_URL"
_DATABASE_DRIVER_ENV = "DISKFREE_DATABASE_DRIVER"
_DATABASE_USER_ENV = "DISKFREE_DATABASE_USER"
_DATABASE_PASSWORD_ENV = "DISKFREE_DATABASE_PASSWORD"
_CHECK_SECONDS_ENV = "DISKFREE_CHECK_SECONDS"
_REPORT_HOURS_ENV = "DISKFREE_REPORT_HOURS"
_KEEP_DAYS_ENV = "DISKFREE_KEEP_DAYS"
_MAX_FAILURES_ENV = "DISKFREE_MAX_FAILURES"
_DF_TIMEOUT_ENV = "DISKFREE_DF_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_DATABASE_URL = "sqlite:///./tmp/diskfree.db"


@dataclass(frozen=True)
class Settings:
    database_url: URL
    check_seconds: int
    report_hours: Decimal
    keep_days: int
    max_consecutive_failures: int
    df_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    candidate = _read_optional_env(name)
    if candidate is None:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float_env(name: str, default: float) -> float:
    candidate = _read_optional_env(name)
    if candidate is None:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_hours(default: Decimal) -> Decimal:
    candidate = _read_optional_env(_REPORT_HOURS_ENV)
    if candidate is None:
        return default
    try:
        parsed = Decimal(candidate)
    except InvalidOperation:
        return default
    return parsed if parsed.is_finite() and parsed >= 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def build_database_url(
    url: str,
    driver: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> URL:
    """Combine the connection URL with optional driver and credential overrides."""
    try:
        parsed = make_url(url)
    except ArgumentError as exc:
        raise ConfigurationError(f"Invalid database URL {url!r}: {exc}") from exc

    overrides: dict[str, str] = {}
    if driver:
        if "+" in driver:
            overrides["drivername"] = driver
        else:
            overrides["drivername"] = f"{parsed.get_backend_name()}+{driver}"
    if username:
        overrides["username"] = username
    if password:
        overrides["password"] = password
    return parsed.set(**overrides) if overrides else parsed


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=build_database_url(
            _read_str_env(_DATABASE_URL_ENV, DEFAULT_DATABASE_URL),
            driver=_read_optional_env(_DATABASE_DRIVER_ENV),
            username=_read_optional_env(_DATABASE_USER_ENV),
            password=_read_optional_env(_DATABASE_PASSWORD_ENV),
        ),
        check_seconds=_read_int_env(_CHECK_SECONDS_ENV, 60),
        report_hours=_read_hours(Decimal(24)),
        keep_days=_read_int_env(_KEEP_DAYS_ENV, 30, minimum=0),
        max_consecutive_failures=_read_int_env(_MAX_FAILURES_ENV, 3, minimum=0),
        df_timeout=_read_float_env(_DF_TIMEOUT_ENV, 30.0),
        log_level=_read_log_level("INFO"),
    )
