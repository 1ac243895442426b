"""Centralized logger configuration.

Usage:
    from furnace.utils.logger import get_logger
    logger = get_logger(__name__)

Entry points call setup_logging() once; library modules only ask for a logger.
"""
import logging
import os

DEFAULT_LEVEL = os.getenv("FURNACE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# requests/urllib3 log every connection at DEBUG; the status poll makes that noisy.
NOISY_LOGGERS = ("urllib3", "requests")


def setup_logging(level: str = DEFAULT_LEVEL, verbose: bool = False) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    if verbose:
        logging.getLogger("furnace").setLevel(logging.DEBUG)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
