"""
Deterministic random sources for universe sampling and evaluation.

A run seed is split with numpy's SeedSequence into one child seed per
universe. Each universe then owns two independent streams: one for its
initial conditions (sampler) and one for its month-by-month trajectory
(evaluator). Universes never share generator state, so they can be
evaluated in any order on any worker.
"""

from typing import Optional

import numpy as np


SAMPLING_STREAM = 0
TRAJECTORY_STREAM = 1


def new_run_seed() -> int:
    """Fresh OS entropy, returned as an int so the run can be replayed."""
    return int(np.random.SeedSequence().entropy)


def spawn_universe_seeds(seed: Optional[int], count: int) -> list[int]:
    """
    Split a run seed into independent per-universe seeds.

    Args:
        seed: Run seed (None draws fresh entropy)
        count: Number of universes

    Returns:
        List of integer seeds, one per universe
    """
    root = np.random.SeedSequence(seed)
    return [int(child.generate_state(1, dtype=np.uint64)[0]) for child in root.spawn(count)]


def generator_for(universe_seed: int, stream: int) -> np.random.Generator:
    """Generator for one stream of one universe."""
    return np.random.default_rng(np.random.SeedSequence(universe_seed, spawn_key=(stream,)))


class GeneratorDrawSource:
    """DrawSource backed by a numpy Generator."""

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    @classmethod
    def for_universe(cls, universe_seed: int) -> "GeneratorDrawSource":
        """Trajectory stream of the given universe."""
        return cls(generator_for(universe_seed, TRAJECTORY_STREAM))

    def uniform(self, size: int) -> list[float]:
        return self.rng.random(size).tolist()

    def normal(self, size: int) -> list[float]:
        return self.rng.standard_normal(size).tolist()
