"""Logging setup for applications embedding the metrics services."""

import logging
from typing import Optional

from ridemetrics.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; defaults to ``Settings.LOG_LEVEL``
    """
    level_name = (level or get_settings().LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger("ridemetrics").setLevel(log_level)
