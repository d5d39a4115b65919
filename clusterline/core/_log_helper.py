import logging
import sys

LOGGER_NAME = "clusterline"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    level: int | str | None = None,
    stream=None,
) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Safe to call repeatedly; the handler is installed once.
    """
    if level is None:
        from clusterline.settings import get_settings

        level = get_settings().log_level
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, "_clusterline", False):
            return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    setattr(handler, "_clusterline", True)
    logger.addHandler(handler)
    return logger
