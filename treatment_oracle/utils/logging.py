"""
Logging configuration for the treatment oracle and its API.

Library modules log under "treatment_oracle.*" and the HTTP layer under
"api.*"; setup_logging configures both namespaces the same way.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NAMESPACES = ("treatment_oracle", "api")


def _handlers(level: int, log_file: Optional[str]) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for the engine and the API.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.
        log_file: Optional file to also write to. Defaults to ORACLE_LOG_FILE.

    Returns:
        The "treatment_oracle" logger
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    level_num = getattr(logging, level.upper(), logging.INFO)
    log_file = log_file or os.getenv("ORACLE_LOG_FILE")

    handlers = _handlers(level_num, log_file)
    for namespace in NAMESPACES:
        logger = logging.getLogger(namespace)
        logger.setLevel(level_num)
        # Repeated setup replaces handlers
        logger.handlers = list(handlers)

    return logging.getLogger("treatment_oracle")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the treatment_oracle namespace.

    Args:
        name: Optional dotted suffix, e.g. "simulation.sampler"
    """
    if name:
        return logging.getLogger(f"treatment_oracle.{name}")
    return logging.getLogger("treatment_oracle")
