"""Logging utilities for the fx_euro package."""

from __future__ import annotations

import logging
from typing import Optional

_ROOT_NAME = "fx_euro"
_LOGGER: Optional[logging.Logger] = None


def get_logger(name: str = _ROOT_NAME) -> logging.Logger:
    """Return a named logger, configuring the root handler on first use."""
    global _LOGGER
    if _LOGGER is None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        _LOGGER = logging.getLogger(_ROOT_NAME)
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Change the threshold of every ``fx_euro.*`` logger at once."""

    get_logger().setLevel(level.upper() if isinstance(level, str) else level)
