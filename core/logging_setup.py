from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from core.settings import LOG_PATH, LOGGING

ROOT_LOGGER = "planner"


def _coerce_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelName(level.strip().upper())
        if isinstance(value, int):
            return value
    return logging.getLevelName(LOGGING.level)


def configure_logging(
    log_path: Optional[Union[str, Path]] = None,
    level: Union[int, str, None] = None,
) -> logging.Logger:
    """Attach one rotating file handler to the ``planner`` logger tree.

    Repeated calls only adjust the level.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        target = Path(log_path or LOG_PATH)
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            target,
            maxBytes=LOGGING.max_bytes,
            backupCount=LOGGING.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOGGING.format))
        logger.addHandler(handler)
    logger.setLevel(_coerce_level(level))
    return logger


__all__ = ["ROOT_LOGGER", "configure_logging"]
