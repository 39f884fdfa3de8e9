"""Logging configuration for loadout.

Provides a consistent logging setup:
- Console handler: warnings and above
- File handler: debug and above, only when LOADOUT_LOG_FILE is set
"""

import logging
import os
from pathlib import Path

LOG_FILE_ENV = "LOADOUT_LOG_FILE"

# Module-level logger cache
_loggers = {}


def get_logger(name: str = "loadout") -> logging.Logger:
    """Get a configured logger for loadout modules.

    Args:
        name: Logger name (typically module name like "loadout.decoder")

    Returns:
        Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter(
            "[%(name)s] %(levelname)s: %(message)s"
        ))
        logger.addHandler(console_handler)

        log_file = os.environ.get(LOG_FILE_ENV)
        if log_file:
            try:
                path = Path(log_file)
                path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(path)
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(logging.Formatter(
                    "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S"
                ))
                logger.addHandler(file_handler)
            except (IOError, OSError):
                # Can't write to log file - continue with console only
                pass

        logger.propagate = False

    _loggers[name] = logger
    return logger
