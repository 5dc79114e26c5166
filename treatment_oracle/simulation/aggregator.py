"""
Outcome Aggregator.

Reduces all evaluated universes of one candidate into distribution
statistics. This is the synchronization barrier of a run: it needs every
universe of the candidate before it can produce anything.
"""

from collections import Counter
from typing import Optional, Sequence

import numpy as np

from treatment_oracle.errors import EmptyInput
from treatment_oracle.models.enums import DiseaseStatus
from treatment_oracle.models.simulation import (
    OUTCOME_FIELDS,
    AcceptableOutcome,
    AggregateOutcome,
    ConvergenceDiagnostic,
    FinalOutcome,
    OutcomeStatistics,
    Universe,
)


DEFAULT_PERCENTILES = (5, 25, 50, 75, 95)
DEFAULT_CONVERGENCE_TOLERANCE = 0.02
TAIL_FRACTION = 0.05
Z_95 = 1.96


def _percentile_key(q: float) -> str:
    return f"p{q:g}"


def _statistics(values: np.ndarray, percentiles: Sequence[float]) -> OutcomeStatistics:
    return OutcomeStatistics(
        mean=float(np.mean(values)),
        std=float(np.std(values)),
        min=float(np.min(values)),
        max=float(np.max(values)),
        percentiles={
            _percentile_key(q): float(np.percentile(values, q))
            for q in percentiles
        },
    )


def coefficient_of_variation(values: np.ndarray) -> float:
    """std / mean; 0 for a constant sample, 1 when the mean is 0 but values vary."""
    mean = float(np.mean(values))
    std = float(np.std(values))
    if mean == 0.0:
        return 0.0 if std == 0.0 else 1.0
    return std / abs(mean)


def is_acceptable(outcome: FinalOutcome, acceptable: AcceptableOutcome) -> bool:
    """Whether an outcome strictly beats every threshold that is set."""
    if outcome.overall_survival <= acceptable.overall_survival:
        return False
    if (
        acceptable.progression_free_survival is not None
        and outcome.progression_free_survival <= acceptable.progression_free_survival
    ):
        return False
    if (
        acceptable.quality_adjusted_life_years is not None
        and outcome.quality_adjusted_life_years <= acceptable.quality_adjusted_life_years
    ):
        return False
    if (
        acceptable.max_treatment_burden is not None
        and outcome.treatment_burden >= acceptable.max_treatment_burden
    ):
        return False
    return True


def _convergence(values: np.ndarray, tolerance: float) -> ConvergenceDiagnostic:
    n = len(values)
    standard_error = float(np.std(values, ddof=1) / np.sqrt(n)) if n > 1 else 0.0
    mean = float(np.mean(values))
    half_width = Z_95 * standard_error / abs(mean) if mean != 0.0 else 0.0
    return ConvergenceDiagnostic(
        standard_error=standard_error,
        relative_half_width=half_width,
        converged=n > 1 and half_width <= tolerance,
    )


def aggregate(
    universes: Sequence[Universe],
    acceptable: Optional[AcceptableOutcome] = None,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    convergence_tolerance: float = DEFAULT_CONVERGENCE_TOLERANCE,
) -> AggregateOutcome:
    """
    Aggregate the evaluated universes of one candidate.

    Args:
        universes: Evaluated universes, all on the same treatment path
        acceptable: Thresholds for optimal_path_probability (defaults apply if None)
        percentiles: Percentiles reported for every outcome field
        convergence_tolerance: Max relative CI half-width to call the run converged

    Returns:
        AggregateOutcome for the candidate

    Raises:
        EmptyInput: If no universes are given
        ValueError: If a universe is unevaluated or paths are mixed
    """
    if not universes:
        raise EmptyInput("Cannot aggregate zero universes")

    acceptable = acceptable or AcceptableOutcome()

    unevaluated = [u.universe_id for u in universes if not u.is_evaluated]
    if unevaluated:
        raise ValueError(f"{len(unevaluated)} universes have not been evaluated")

    paths = {u.treatment_path for u in universes}
    if len(paths) > 1:
        raise ValueError(f"Universes span several treatment paths: {sorted(map(str, paths))}")

    outcomes = [u.final_outcome for u in universes]
    columns = {
        name: np.array([getattr(o, name) for o in outcomes], dtype=float)
        for name in OUTCOME_FIELDS
    }
    survival = columns["overall_survival"]

    tail_count = max(1, int(np.ceil(TAIL_FRACTION * len(survival))))
    tail_risk = float(np.mean(np.sort(survival)[:tail_count]))

    final_statuses = [u.timeline[-1].disease_status if u.timeline else None for u in universes]
    responding = sum(1 for s in final_statuses if s == DiseaseStatus.RESPONDING)

    incidence = Counter()
    any_side_effect = 0
    for universe in universes:
        seen = {name for step in universe.timeline for name in step.side_effects}
        incidence.update(seen)
        if seen:
            any_side_effect += 1

    total = len(universes)
    acceptable_count = sum(1 for o in outcomes if is_acceptable(o, acceptable))

    return AggregateOutcome(
        treatment=universes[0].treatment_path or "",
        universe_count=total,
        **{name: _statistics(values, percentiles) for name, values in columns.items()},
        optimal_path_probability=acceptable_count / total,
        robustness_score=1.0 - min(1.0, max(0.0, coefficient_of_variation(survival))),
        tail_risk=tail_risk,
        response_rate=responding / total,
        adverse_event_rate=any_side_effect / total,
        adverse_event_incidence={name: incidence[name] / total for name in sorted(incidence)},
        convergence=_convergence(survival, convergence_tolerance),
    )
