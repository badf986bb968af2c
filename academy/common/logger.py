"""Logging setup for the access control service.

Console and rotating file output share one ISO 8601 formatter. Authorization
decisions can additionally be kept in their own trail file so that grants and
denials are not buried in request noise.
"""

import logging
import logging.handlers
import os
from typing import Optional, Sequence

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Loggers, relative to the application logger, that emit decisions
DECISION_LOGGERS = ("core.audit", "services.decision_log")


def _rotating_handler(path: str, formatter: logging.Formatter, max_bytes: int, backup_count: int):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    name: str,
    log_dir: str = "/var/log/academy",
    level: str = "INFO",
    log_format: Optional[str] = None,
    file_logging: bool = True,
    console_logging: bool = True,
    decision_trail: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the application logger.

    Args:
        name: Logger name, normally the top-level package
        log_dir: Directory for ``{name}.log`` and ``{name}-decisions.log``
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (any case)
        log_format: Format string, DEFAULT_FORMAT when omitted
        file_logging: Write ``{name}.log``
        console_logging: Write to stderr
        decision_trail: Also write audit and decision log records to
            ``{name}-decisions.log``
        max_bytes: Size at which a log file rotates
        backup_count: Rotated files kept per log

    Returns:
        The configured logger. Calling again only updates the level.
    """
    level_name = level.upper()
    if level_name not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LOG_LEVELS)}")

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level_name))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    if file_logging:
        path = os.path.join(log_dir, f"{name}.log")
        logger.addHandler(_rotating_handler(path, formatter, max_bytes, backup_count))

    if console_logging:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    if decision_trail:
        path = os.path.join(log_dir, f"{name}-decisions.log")
        trail = _rotating_handler(path, formatter, max_bytes, backup_count)
        attach_decision_trail(name, trail)

    return logger


def attach_decision_trail(
    name: str,
    handler: logging.Handler,
    loggers: Sequence[str] = DECISION_LOGGERS,
) -> None:
    """Send decision loggers under ``name`` to ``handler`` as well."""
    for child in loggers:
        child_logger = logging.getLogger(f"{name}.{child}")
        if handler not in child_logger.handlers:
            child_logger.addHandler(handler)
