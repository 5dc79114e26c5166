"""Utility functions and helpers."""

from treatment_oracle.utils.logging import get_logger, setup_logging
from treatment_oracle.utils.protocols import DrawSource

__all__ = [
    "DrawSource",
    "get_logger",
    "setup_logging",
]
