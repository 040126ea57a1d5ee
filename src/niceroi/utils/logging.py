"""
Logging helpers shared by the roi_canvas and delete_roi packages.

Every niceroi module logs through ``get_logger(__name__)``, so records land
under the "niceroi" hierarchy. The package itself installs only a
NullHandler; where the records end up is the host application's choice.

Demos that run ``ui.run()`` on their own can turn on console output:
    ```python
    from niceroi.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

or leave ``level`` out and export NICEROI_LOG_LEVEL instead.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "niceroi"
LOG_LEVEL_ENV = "NICEROI_LOG_LEVEL"

DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d:%(funcName)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _has_console_handler(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and h.stream is sys.stderr
        for h in logger.handlers
    )


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Send "niceroi" log records to stderr. The root logger is left alone.

    Parameters
    ----------
    level:
        Level name or number. When omitted, NICEROI_LOG_LEVEL is read, falling
        back to "INFO". Unknown names also mean "INFO".
    fmt, datefmt:
        Formatter strings; DEFAULT_FMT and DEFAULT_DATEFMT when omitted.
    force:
        Drop the logger's current handlers first. Without it, a second call
        is a no-op once a stderr handler is attached.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if force:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)
    elif _has_console_handler(logger):
        return

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(fmt=fmt or DEFAULT_FMT, datefmt=datefmt or DEFAULT_DATEFMT)
    )
    logger.addHandler(console)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for `name`; the package-wide "niceroi" logger when omitted."""
    return logging.getLogger(name if name is not None else ROOT_LOGGER_NAME)
