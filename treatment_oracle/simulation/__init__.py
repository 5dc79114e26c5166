"""
Multi-universe simulation.

Sampling, trajectory evaluation and aggregation of simulated universes.
"""

from treatment_oracle.simulation.aggregator import aggregate
from treatment_oracle.simulation.evaluator import TrajectoryEvaluator, evaluate_batch
from treatment_oracle.simulation.random_source import GeneratorDrawSource, new_run_seed
from treatment_oracle.simulation.sampler import ScenarioSampler, validate_uncertainty_model

__all__ = [
    "GeneratorDrawSource",
    "ScenarioSampler",
    "TrajectoryEvaluator",
    "aggregate",
    "evaluate_batch",
    "new_run_seed",
    "validate_uncertainty_model",
]
