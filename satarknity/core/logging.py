"""
Satarknity - Logging Configuration
Stdout logging for the API process. Backend and geocoder calls go through
httpx, whose per-request logs are held at WARNING unless running at DEBUG.
"""

import logging
import sys
from typing import Optional

from satarknity.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# HTTP client and multipart parser chatter
NOISY_LOGGERS = ("httpx", "httpcore", "multipart")


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root handler and the `satarknity` logger.

    Args:
        level: Log level name; defaults to LOG_LEVEL from settings
        format_string: Override for LOG_FORMAT

    Returns:
        The `satarknity` package logger
    """
    log_level = getattr(logging, (level or settings.log_level).upper())

    logging.basicConfig(
        level=log_level,
        format=format_string or LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logger = logging.getLogger("satarknity")
    logger.setLevel(log_level)

    noisy_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return logger
