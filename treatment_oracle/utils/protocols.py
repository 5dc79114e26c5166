"""
Shared Protocol definitions for type hints across the codebase.

These protocols define the interfaces expected from injectable
collaborators, allowing for dependency injection and testing.
"""

from typing import Protocol, Sequence


class DrawSource(Protocol):
    """
    Source of the random draws consumed by the trajectory evaluator.

    The evaluator asks for draws step by step in a fixed order, so any
    implementation that returns the same numbers in the same order yields
    the same trajectory.
    """

    def uniform(self, size: int) -> Sequence[float]:
        """
        Draw values uniformly from [0, 1).

        Args:
            size: Number of values

        Returns:
            Sequence of floats
        """
        ...

    def normal(self, size: int) -> Sequence[float]:
        """
        Draw values from the standard normal distribution.

        Args:
            size: Number of values

        Returns:
            Sequence of floats
        """
        ...
