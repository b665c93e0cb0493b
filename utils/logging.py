"""Logging setup shared by the cache refresher, the scanner and the CLI."""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s (%(threadName)s): %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing to stdout, honouring LOG_LEVEL."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, level, logging.INFO))
        logger.propagate = False
    return logger
