# script_scout/logger.py
"""Logging setup for ScriptScout.

Every module logs through one named logger, ``ScriptScout``; import the ready
instance (``from script_scout.logger import logger``) or fetch it with
``logging.getLogger(LOGGER_NAME)``. The CLI calls :func:`init_logging` once
its options are parsed, which swaps the handlers in place.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

LOGGER_NAME: Final[str] = "ScriptScout"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 3


def _build_handlers(log_file: Union[str, Path, None], formatter: logging.Formatter) -> List[logging.Handler]:
    # stdout is looked up per call: CLI runners and test harnesses replace it
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                str(path), maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: Union[int, str] = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the project logger and return it.

    With ``replace_handlers=False`` the new handlers are added next to the
    existing ones. The logger never propagates to the root logger.
    """
    project_logger = logging.getLogger(LOGGER_NAME)
    project_logger.setLevel(level)
    if replace_handlers:
        for old in list(project_logger.handlers):
            project_logger.removeHandler(old)
            old.close()
    for handler in _build_handlers(log_file, logging.Formatter(log_format)):
        project_logger.addHandler(handler)
    project_logger.propagate = False
    return project_logger


def init_logging(
    level: Union[int, str] = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """CLI entry: configure the logger, replacing whatever was attached."""
    return configure(level=level, log_file=log_file, log_format=log_format)


logger: logging.Logger = init_logging()

__all__ = ["LOGGER_NAME", "DEFAULT_FORMAT", "configure", "init_logging", "logger"]
