"""Console and rotating-file logging."""

import logging
import os
from logging.handlers import RotatingFileHandler

from payroll_api.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE = "server.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_configured = False


def configure_logging(settings: Settings) -> None:
    """Attach a console handler and a rotating file handler to the root logger, once."""
    global _configured
    if _configured:
        return

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, LOG_FILE),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    root.addHandler(console)
    root.addHandler(file_handler)
    _configured = True
