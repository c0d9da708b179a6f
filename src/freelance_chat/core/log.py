"""Process-wide logging setup."""

from __future__ import annotations

import logging

from freelance_chat.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set the root level from ``LOG_LEVEL`` unless ``level`` overrides it."""
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
