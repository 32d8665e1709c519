"""Logging setup for the planner service."""

from __future__ import annotations

import logging

from planner.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from *settings* (or the cached defaults).

    Safe to call more than once; later calls only adjust the level.
    """
    if settings is None:
        settings = get_settings()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)

    # uvicorn's access log duplicates our request-level messages
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
