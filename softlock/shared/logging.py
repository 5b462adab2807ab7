"""Logging helpers with consistent formatting."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import settings


def get_logger(name: str, level: Optional[int | str] = None, *, rich: bool = True) -> logging.Logger:
    """Configure and return a logger.

    Level defaults to ``settings.LOG_LEVEL``. Loggers are configured once;
    later calls return the existing instance untouched.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = level if level is not None else settings.LOG_LEVEL.upper()
    logger.setLevel(level)

    if rich:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            level=level,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            show_time=True,
            show_path=False,
        )
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(name)s %(levelname)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    return logger
