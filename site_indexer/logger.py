# site_indexer/logger.py
"""
Logging for SiteIndexer.

Every module writes to the one "SiteIndexer" logger exported here as
:data:`logger`; the CLI calls :func:`init_logging` once the command line is
parsed. Output goes to stdout and, when a log file is given, to a rotating
file as well.

The crawl reports five levels. Besides the stdlib ones there is
:data:`VERBOSE` (5), used for per-request timings and payload sizes::

    from site_indexer.logger import VERBOSE, logger
    logger.log(VERBOSE, "Batch indexing timing: %.2f seconds", elapsed)
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

LOGGER_NAME: Final[str] = "SiteIndexer"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

VERBOSE: Final[int] = 5
logging.addLevelName(VERBOSE, "VERBOSE")

# rotation of the optional log file
_MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_BACKUPS: Final[int] = 3

Level = Union[int, str]


def _resolve_level(level: Level) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _handlers(log_file: str | Path | None, formatter: logging.Formatter) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(str(log_file), maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: Level = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the SiteIndexer logger and return it.

    ``level`` accepts numbers or names, ``"VERBOSE"`` included. With
    ``replace_handlers`` the previous handlers are closed and removed first.
    The logger never propagates to the root logger, so embedding
    applications keep their own logging untouched.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(_resolve_level(level))

    if replace_handlers:
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()

    for handler in _handlers(log_file, logging.Formatter(log_format)):
        lg.addHandler(handler)
    lg.propagate = False
    return lg


def init_logging(
    level: Level = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure from CLI options: console output, plus *log_file* when given."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "VERBOSE", "LOGGER_NAME"]
