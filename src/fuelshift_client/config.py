from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    access_token: str | None = None
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    verify_ssl: bool = True
    resolve_attempts: int = 3
    retry_backoff_seconds: float = 1.0
    sales_refresh_seconds: float = 30.0
    watchdog_interval_seconds: float = 5.0
    stuck_check_seconds: float = 10.0
    success_reset_seconds: float = 3.0
    active_shift_fresh_seconds: float = 5.0
    cache_dir: str | None = None

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str, *, minimum: float = 0.0, strict: bool = False) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc
    if value < minimum or (strict and value == minimum):
        comparison = ">" if strict else ">="
        raise ConfigError(f"Invalid {name}: expected {comparison} {minimum}, got {value}")
    return value


def _read_int(name: str, default: str, *, minimum: int = 0) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"Invalid {name}: expected >= {minimum}, got {value}")
    return value


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("FUELSHIFT_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"FUELSHIFT_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("FUELSHIFT_API_BASE_URL") or "").strip()
    )
    _require({"FUELSHIFT_API_BASE_URL": api_base_url}, ["FUELSHIFT_API_BASE_URL"])

    timeout_seconds = _read_float("FUELSHIFT_TIMEOUT_SECONDS", "15", strict=True)
    connect_timeout_seconds = _read_float(
        "FUELSHIFT_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0)), strict=True
    )
    cache_dir = (os.getenv("FUELSHIFT_CACHE_DIR") or "").strip() or None
    access_token = (os.getenv("FUELSHIFT_ACCESS_TOKEN") or "").strip() or None

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        access_token=access_token,
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=max(timeout_seconds, connect_timeout_seconds),
        verify_ssl=_coerce_bool(os.getenv("FUELSHIFT_VERIFY_SSL"), True),
        resolve_attempts=_read_int("FUELSHIFT_RESOLVE_ATTEMPTS", "3", minimum=1),
        retry_backoff_seconds=_read_float("FUELSHIFT_RETRY_BACKOFF_SECONDS", "1.0"),
        sales_refresh_seconds=_read_float("FUELSHIFT_SALES_REFRESH_SECONDS", "30", strict=True),
        watchdog_interval_seconds=_read_float("FUELSHIFT_WATCHDOG_INTERVAL_SECONDS", "5", strict=True),
        stuck_check_seconds=_read_float("FUELSHIFT_STUCK_CHECK_SECONDS", "10", strict=True),
        success_reset_seconds=_read_float("FUELSHIFT_SUCCESS_RESET_SECONDS", "3"),
        active_shift_fresh_seconds=_read_float("FUELSHIFT_ACTIVE_SHIFT_FRESH_SECONDS", "5"),
        cache_dir=cache_dir,
    )
