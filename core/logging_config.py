# core/logging_config.py

"""
One application logger, imported everywhere as
``from core.logging_config import logger``.
"""

import logging

from core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "rossai.email"

# supabase-py logs every PostgREST / GoTrue request through httpx at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logger(level: str = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)

    # Avoid duplicate handlers in dev reload
    if logger.handlers:
        return logger

    level_name = (level or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger = setup_logger()
