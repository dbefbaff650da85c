"""
Logging utilities for the Rancher Fleet Hub.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        verbose: Enable verbose (DEBUG) logging, overrides log_level
        log_file: Optional path to a rotating log file
        log_level: Level name such as "info" or "warning"

    Returns:
        Logger instance
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or "info").upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT
            )
        )

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    return logging.getLogger(__name__)


def log_operation(
    logger: logging.Logger, operation: str, server_name: str, **details
) -> None:
    """Log a successful Rancher operation against one server."""
    suffix = ""
    if details:
        suffix = " " + ", ".join(f"{k}={v}" for k, v in details.items())
    logger.info(f"Rancher operation: {operation} [server={server_name}]{suffix}")


def log_operation_error(
    logger: logging.Logger, operation: str, server_name: str, error: BaseException
) -> None:
    """Log a failed Rancher operation against one server."""
    logger.error(
        f"Rancher operation error: {operation} [server={server_name}] {error}",
        exc_info=error if logger.isEnabledFor(logging.DEBUG) else None,
    )
