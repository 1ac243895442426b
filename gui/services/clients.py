"""Client factories for the GUI layer."""

from __future__ import annotations

from typing import Optional

from furnace.config import Settings, get_settings
from furnace.proxy_client import ProxyClient


def get_proxy_client(settings: Optional[Settings] = None) -> ProxyClient:
    """Return a furnace proxy client configured from settings."""
    settings = settings or get_settings()
    return ProxyClient(base_url=settings.furnace_url, timeout=settings.request_timeout)
