"""Logging setup for the studio_agent package."""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Attach one stream handler to the ``studio_agent`` logger.

    Safe to call repeatedly; only the level changes after the first call.
    The root logger is left alone so host applications keep their own setup.
    """
    logger = logging.getLogger("studio_agent")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    if not any(getattr(h, "_studio_agent", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._studio_agent = True
        logger.addHandler(handler)

    return logger
