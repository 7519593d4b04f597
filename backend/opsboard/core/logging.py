"""Process-wide logging setup."""

import logging

from .config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("opsboard").setLevel(settings.log_level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
