"""
Logging setup for the command-line tools.
"""

import logging

from .config import LoggingConfig

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(name: str) -> int:
    """Map a config level name to a logging level (unknown names -> INFO)."""
    return _LEVELS.get(name.lower(), logging.INFO)


def setup_logging(config: LoggingConfig | None = None, verbose: bool = False) -> None:
    """Configure root logging.

    ``verbose`` forces DEBUG regardless of the configured level. When the
    config asks for it, records are also appended to ``log_file``.
    """
    level = logging.DEBUG if verbose else resolve_level(config.level if config else "info")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config and config.log_to_file and config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
