"""
Environment-driven settings for upbank-proxy.

Values are read once into a frozen Settings object which the app factory
hands to every component that needs it.
"""

from dotenv import load_dotenv, find_dotenv

import math
import os
from dataclasses import dataclass
from typing import Optional

from upbank_proxy.logging_config import get_logger

logger = get_logger("upbank_proxy.config")

DEFAULT_UP_API_BASE_URL = "https://api.up.com.au/api/v1"

DATA_SOURCE_LIVE = "live"
DATA_SOURCE_LOCAL_FILE = "local_file"
DATA_SOURCES = (DATA_SOURCE_LIVE, DATA_SOURCE_LOCAL_FILE)
MIN_KEEP_ALIVE_MINUTES = 1.0


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    up_token: str = ""
    up_api_base_url: str = DEFAULT_UP_API_BASE_URL
    up_page_size: int = 100
    up_page_delay_seconds: float = 0.5
    up_rate_limit_cooldown_seconds: float = 30.0
    up_rate_limit_max_attempts: Optional[int] = 10  # None = retry forever
    up_request_timeout: float = 30.0
    cache_ttl_minutes: float = 30.0
    data_source: str = DATA_SOURCE_LIVE
    local_transactions_file: str = "transactions.json"
    self_ping_base_url: Optional[str] = None
    keep_alive_interval_minutes: float = 10.0
    keep_alive_path: str = "/health"
    prewarm_hour: int = 6
    prewarm_path: str = "/api/transactions/csv"
    log_level: str = "INFO"
    log_console_level: str = "WARNING"
    log_dir: str = "logs"

    @property
    def scheduler_enabled(self) -> bool:
        return bool(self.self_ping_base_url)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r; using default %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r; using default %s", name, raw, default)
        return default


def load_settings(load_env_file: bool = True) -> Settings:
    """
    Build Settings from the process environment (and a .env file, if found).
    """
    if load_env_file:
        load_dotenv(find_dotenv(usecwd=True), override=False)

    max_attempts = _env_int("UP_RATE_LIMIT_MAX_ATTEMPTS", 10)
    data_source = _env_str("DATA_SOURCE", DATA_SOURCE_LIVE).lower()
    if data_source not in DATA_SOURCES:
        raise ValueError(f"DATA_SOURCE must be one of {DATA_SOURCES}, got {data_source!r}")

    keep_alive_minutes = _env_float("KEEP_ALIVE_INTERVAL_MINUTES", 10.0)
    if not math.isfinite(keep_alive_minutes) or keep_alive_minutes < MIN_KEEP_ALIVE_MINUTES:
        logger.warning(
            "KEEP_ALIVE_INTERVAL_MINUTES=%s must be at least %s; using 10",
            keep_alive_minutes,
            MIN_KEEP_ALIVE_MINUTES,
        )
        keep_alive_minutes = 10.0

    prewarm_hour = _env_int("PREWARM_HOUR", 6)
    if not 0 <= prewarm_hour <= 23:
        logger.warning("PREWARM_HOUR=%s out of range; using 6", prewarm_hour)
        prewarm_hour = 6

    settings = Settings(
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        up_token=_env_str("UP_TOKEN", ""),
        up_api_base_url=_env_str("UP_API_BASE_URL", DEFAULT_UP_API_BASE_URL).rstrip("/"),
        up_page_size=max(1, _env_int("UP_PAGE_SIZE", 100)),
        up_page_delay_seconds=max(0.0, _env_float("UP_PAGE_DELAY_SECONDS", 0.5)),
        up_rate_limit_cooldown_seconds=max(0.0, _env_float("UP_RATE_LIMIT_COOLDOWN_SECONDS", 30.0)),
        up_rate_limit_max_attempts=max_attempts if max_attempts > 0 else None,
        up_request_timeout=_env_float("UP_REQUEST_TIMEOUT", 30.0),
        cache_ttl_minutes=_env_float("CACHE_TTL_MINUTES", 30.0),
        data_source=data_source,
        local_transactions_file=_env_str("LOCAL_TRANSACTIONS_FILE", "transactions.json"),
        self_ping_base_url=(os.getenv("SELF_PING_BASE_URL") or "").strip().rstrip("/") or None,
        keep_alive_interval_minutes=keep_alive_minutes,
        keep_alive_path=_env_str("KEEP_ALIVE_PATH", "/health"),
        prewarm_hour=prewarm_hour,
        prewarm_path=_env_str("PREWARM_PATH", "/api/transactions/csv"),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        log_console_level=_env_str("LOG_CONSOLE_LEVEL", "WARNING").upper(),
        log_dir=_env_str("LOG_DIR", "logs"),
    )

    if not settings.up_token and settings.data_source == DATA_SOURCE_LIVE:
        logger.warning("UP_TOKEN is not set; upstream calls will be rejected")
    return settings
