from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config

LOGGER = logging.getLogger("avdlatency")
_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_active_log_path: Optional[Path] = None


def _build_handlers(log_path: Path) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: List[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _attach(log_path: Path) -> None:
    """Swap the monitor logger's handlers for console + ``log_path`` output."""

    global _active_log_path

    log_path.parent.mkdir(parents=True, exist_ok=True)
    for old in list(LOGGER.handlers):
        LOGGER.removeHandler(old)
        old.close()

    for handler in _build_handlers(log_path):
        LOGGER.addHandler(handler)
    level = logging.getLevelName(config.LOG_LEVEL)
    LOGGER.setLevel(level if isinstance(level, int) else logging.INFO)
    LOGGER.propagate = False
    _active_log_path = log_path


def _logger() -> logging.Logger:
    if _active_log_path is None:
        _attach(Path(config.LOG_FILE_PATH))
    return LOGGER


def setup_logger(log_path: Optional[Path] = None) -> Path:
    """(Re)point the monitor logger at ``log_path`` (default: ``LOG_FILE_PATH``)."""

    target = Path(log_path) if log_path is not None else Path(config.LOG_FILE_PATH)
    _attach(target)
    LOGGER.info("Logging to %s", target)
    return target


def get_current_log_path() -> Path:
    _logger()
    assert _active_log_path is not None
    return _active_log_path


def log_line(message: str) -> None:
    _logger().info(message)


def log_warning(message: str) -> None:
    _logger().warning(message)


def log_exception(message: str) -> None:
    """Log ``message`` at error level with the active exception's traceback."""

    _logger().error(message, exc_info=True)


__all__ = [
    "LOGGER",
    "setup_logger",
    "get_current_log_path",
    "log_line",
    "log_warning",
    "log_exception",
]
