"""Process-wide logging configuration."""

from __future__ import annotations

import logging

from civicsense.core.config import settings

_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level_name)
        return

    logging.basicConfig(
        level=level_name,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
