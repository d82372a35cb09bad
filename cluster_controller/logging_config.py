"""Logging configuration for the cluster controller.

Log records go to stderr so that ``cluster-ctl render`` output on stdout can
be piped straight into ``kubectl apply -f -``.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every API request at DEBUG
CLIENT_LOGGERS = ("kubernetes", "urllib3")


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: str = "WARNING", log_file: Path | None = None, verbose: bool = False
) -> None:
    """Configure logging for the controller.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file, which always receives DEBUG records
        verbose: If True, the console shows DEBUG records

    Raises:
        ValueError: If the level name is not a logging level
    """
    console_level = logging.DEBUG if verbose else _parse_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG if log_file else console_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logging.warning(f"Failed to create log file handler: {e}")

    # API request dumps only help when debugging the client itself
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (typically ``get_logger(__name__)``)."""
    return logging.getLogger(name)
