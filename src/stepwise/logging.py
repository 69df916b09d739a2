"""Logging for stepwise.

Everything logs through children of the ``stepwise`` logger. Two extra
levels sit around the standard ones: VERBOSE (15) between debug and info,
and TRACE (5) below debug for per-chunk detail.

Output goes to the file named by ``logging.file`` in the config (the loader
fills it from STEPWISE_LOG), or to stderr when stderr is a terminal. When
neither applies nothing is printed, so piped output stays clean.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepwise.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_ENV_VAR = "STEPWISE_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("stepwise")

# index is the -v count
_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_handlers: list[logging.Handler] = []


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    """Level for a name such as ``"debug"`` or ``"warn"``; unknown names give ``default``."""
    if not name:
        return default
    name = name.strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level: ``verbose`` (0-4) wins over ``level``."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        index = min(max(config.verbose, 0), len(_VERBOSITY_LEVELS) - 1)
        return _VERBOSITY_LEVELS[index]
    return parse_level(config.level)


def _build_handler(log_path: str | None) -> logging.Handler | None:
    if log_path:
        try:
            return logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8")
        except OSError as e:
            if not sys.stderr.isatty():
                return None
            sys.stderr.write(f"[stepwise] Cannot open log file {log_path}: {e}\n")
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the ``stepwise`` logger. Only the first call has an effect."""
    if _handlers:
        return

    level = resolve_level(config)
    logger.setLevel(level)

    log_path = config.file if config and config.file else os.environ.get(LOG_ENV_VAR)
    handler = _build_handler(log_path) or logging.NullHandler()
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    _handlers.append(handler)


def reset_logging() -> None:
    """Remove the handlers added by ``setup_logging`` so it can run again."""
    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``stepwise`` logger, or its child ``name`` (e.g. "engine")."""
    return logger.getChild(name) if name else logger
