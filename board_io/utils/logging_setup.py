"""
Logging Setup

board_io never configures logging on import - every module just does
logging.getLogger(__name__). Applications (and the demo scripts) call
setup_logging() once at startup.
"""

import logging
from typing import Optional

from config.settings import LOG_FORMAT, LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging from config.settings.

    Args:
        level: Override LOG_LEVEL (e.g. "DEBUG")
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
