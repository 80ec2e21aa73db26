from __future__ import annotations

import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOGGER_NAME = "commission_engine"


def configure_logging(level: str = "INFO") -> None:
    """
    Single stream handler on the package logger. Safe to call more than once
    (tests build the app repeatedly); later calls only change the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    existing = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    if existing:
        for handler in existing:
            handler.setLevel(level.upper())
        return

    handler = logging.StreamHandler()
    handler.setLevel(level.upper())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
