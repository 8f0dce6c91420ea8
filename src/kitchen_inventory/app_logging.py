"""Console logging for the kitchen inventory package."""

import logging

PACKAGE_LOGGER = "kitchen_inventory"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Client libraries that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "google", "openai")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach the console handler once and apply ``level`` on every call.

    Unknown level names fall back to INFO.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    resolved = logging.getLevelName(level.strip().upper())
    logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger
