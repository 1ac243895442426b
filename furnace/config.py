"""Centralized configuration loading.

Loads environment variables once and provides a typed Settings object
for the entry points (GUI, CLI). The controller itself never reads the
environment; entry points pass these values in.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


# Load .env once at import time
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    # Proxy endpoint
    furnace_url: str = field(
        default_factory=lambda: os.getenv("FURNACE_URL", "http://localhost:8080")
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("FURNACE_REQUEST_TIMEOUT", 10.0)
    )

    # Timers (milliseconds)
    refresh_interval_ms: int = field(
        default_factory=lambda: _env_int("FURNACE_REFRESH_INTERVAL_MS", 10_000)
    )
    poll_interval_ms: int = field(
        default_factory=lambda: _env_int("FURNACE_POLL_INTERVAL_MS", 2_000)
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("FURNACE_LOG_LEVEL", "INFO"))
    verbose: bool = field(default_factory=lambda: os.getenv("FURNACE_VERBOSE", "0") == "1")


def get_settings() -> Settings:
    """Return a new Settings instance (cheap dataclass construction)."""
    return Settings()
