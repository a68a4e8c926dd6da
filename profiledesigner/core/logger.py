"""Logging setup for the Profile Designer API.

Everything logs under the ``profiledesigner`` logger. Console output is
always on; a rotating file is added when ``file_logging`` is set.
"""

import logging
import logging.handlers
import os

from profiledesigner.core.config import Settings

LOGGER_NAME = "profiledesigner"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# httpx logs every Cloud Library request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the application logger from settings.

    Safe to call once per app instance: handlers are only attached the
    first time.

    Raises:
        ValueError: If ``settings.log_level`` is not a logging level name
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {settings.log_level}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.file_logging:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, f"{LOGGER_NAME}.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
