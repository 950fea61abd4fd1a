"""Handler wiring for the ``sysgauge`` logger."""

import logging
import logging.handlers
from pathlib import Path

from sysgauge.config.models import LoggingSettings

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOGGER_NAME = "sysgauge"

# Marks handlers installed here so reconfiguring replaces them
_HANDLER_FLAG = "_sysgauge_handler"


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Attach console and optional rotating file handlers.

    Calling this again replaces the handlers it installed before; handlers
    added by the application are left alone.
    """
    settings = settings or LoggingSettings()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(settings.level.upper())

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    setattr(console, _HANDLER_FLAG, True)
    logger.addHandler(console)

    if settings.log_file:
        log_file = Path(settings.log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_FLAG, True)
        logger.addHandler(file_handler)

    return logger
