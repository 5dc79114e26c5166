"""
Progress tracking models for simulation and sensitivity runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class ProgressStage(str, Enum):
    """Stages of an oracle run."""

    INITIALIZING = "initializing"
    SAMPLING = "sampling"
    EVALUATING = "evaluating"
    AGGREGATING = "aggregating"
    SCORING = "scoring"
    SENSITIVITY = "sensitivity"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProgressUpdate:
    """
    Progress update event for callers.

    Attributes:
        stage: Current stage of execution
        message: Human-readable status message
        percent: Overall progress percentage (0-100)
        detail: Optional extra information (candidate, factor, counts)
    """
    stage: ProgressStage
    message: str
    percent: int
    detail: dict = field(default_factory=dict)


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""

    def __call__(self, update: ProgressUpdate) -> None:
        """Called with progress updates during a run."""
        ...
