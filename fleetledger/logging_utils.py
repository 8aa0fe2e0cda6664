"""Mini README: Application-wide logging helpers for the fleet ledger.

Structure:
    * get_logger - factory returning module loggers with baseline setup.
    * configure_root_logger - installs the shared handler exactly once.
    * set_log_level - adjusts the root level after configuration.

Usage:
    Modules declare ``LOGGER = get_logger(__name__)``. The root handler is
    attached a single time so reloading modules under uvicorn's reloader
    does not duplicate log lines.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_INITIALISED = False


def configure_root_logger(level: Union[int, str] = logging.INFO) -> None:
    """Configure the root logger with a timestamped, module-aware format."""

    global _LOGGER_INITIALISED
    if _LOGGER_INITIALISED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def set_log_level(level: Union[int, str]) -> None:
    """Change the root level, configuring the handler first if needed."""

    configure_root_logger(level)
    logging.getLogger().setLevel(level.upper() if isinstance(level, str) else level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger ensuring baseline configuration."""

    configure_root_logger()
    return logging.getLogger(name)
