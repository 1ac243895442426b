"""Logging helpers for the GUI.

Avoids configuring global logging in tests. ``trace()`` lines are only
emitted once verbose mode is switched on (``FURNACE_VERBOSE=1``).
"""

from __future__ import annotations

import json
import logging

logger = logging.getLogger("furnace.gui")

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = bool(enabled)


def log(message: str, level: int = logging.INFO) -> None:
    logger.log(level, message)


def trace(event: str, **details) -> None:
    """Verbose-only trace line: ``TRACE:<event> | {json details}``."""
    if not _verbose:
        return
    payload = f"TRACE:{event}"
    if details:
        payload = f"{payload} | {json.dumps(details, default=str, sort_keys=True)}"
    logger.debug(payload)
