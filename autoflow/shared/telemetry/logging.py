"""Logging setup: one stdout handler for the service, quieter third-party loggers."""

import logging
import sys

from autoflow.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty at INFO; raised to WARNING unless debugging.
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "redis")


def setup_logging() -> None:
    """Configure root logging from settings.

    DEBUG when settings.debug, INFO otherwise. SQL statement logging stays
    on when database_echo is set.
    """
    settings = get_settings()
    level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    if settings.debug:
        return
    for name in _NOISY_LOGGERS:
        if name == "sqlalchemy.engine" and settings.database_echo:
            continue
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as get_logger(__name__)."""
    return logging.getLogger(name)
