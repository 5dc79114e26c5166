"""
Scenario Sampler.

Draws independent universes for a clinical query. Each universe gets a
patient baseline derived from the query and one multiplier per uncertain
factor, sampled around 1.0 with a spread proportional to the factor's
declared uncertainty level.
"""

import logging
import math
import re
from typing import Optional

import numpy as np

from treatment_oracle.errors import InvalidModel
from treatment_oracle.models.clinical import ClinicalQuery
from treatment_oracle.models.simulation import PatientBaseline, UncertaintyModel, Universe
from treatment_oracle.simulation.random_source import (
    SAMPLING_STREAM,
    generator_for,
    spawn_universe_seeds,
)


logger = logging.getLogger(__name__)

MIN_MULTIPLIER = 0.05
MAX_MULTIPLIER = 3.0

# Monthly progression hazard by stage
STAGE_HAZARD = {
    "I": 0.01,
    "II": 0.02,
    "III": 0.04,
    "IV": 0.07,
}
DEFAULT_HAZARD = 0.03

_STAGE_PATTERN = re.compile(r"^(IV|III|II|I)")


def _is_level(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and 0.0 <= value <= 1.0
    )


def validate_uncertainty_model(
    model: UncertaintyModel,
    shifts: Optional[dict[str, float]] = None,
) -> None:
    """
    Reject a malformed model before any sampling work begins.

    Raises:
        InvalidModel: universe_count < 1, a level outside [0, 1], an empty
            factor name, or a shift for an undeclared factor
    """
    if not isinstance(model.universe_count, int) or model.universe_count < 1:
        raise InvalidModel(
            f"universe_count must be >= 1, got {model.universe_count}",
            details={"universe_count": model.universe_count},
        )

    bad = {
        name: level
        for name, level in model.uncertainty_levels.items()
        if not name or not _is_level(level)
    }
    if bad:
        raise InvalidModel(
            "Uncertainty levels must lie in [0, 1]",
            details={"invalid_levels": {k: str(v) for k, v in bad.items()}},
        )

    for factor, shift in (shifts or {}).items():
        if factor not in model.uncertainty_levels:
            raise InvalidModel(
                f"Shift given for undeclared factor '{factor}'",
                details={"factor": factor},
            )
        if not math.isfinite(shift):
            raise InvalidModel(f"Shift for '{factor}' is not finite", details={"factor": factor})


def _stage_hazard(stage: str) -> float:
    normalized = stage.upper().replace("STAGE", "").strip()
    match = _STAGE_PATTERN.match(normalized)
    if not match:
        return DEFAULT_HAZARD
    return STAGE_HAZARD[match.group(1)]


def patient_baseline(query: ClinicalQuery) -> PatientBaseline:
    """
    Derive the starting point of every trajectory from the query.

    Later stage, higher urgency and more prior lines raise the progression
    hazard; poor performance status, symptoms and comorbidities lower the
    starting quality of life; comorbidities, ECOG and age above 65 raise
    toxicity susceptibility.

    Genetic markers, goals and preferences do not enter the baseline.
    """
    context = query.clinical_context
    factors = query.patient_factors
    prior_lines = len(context.prior_treatments)

    hazard = _stage_hazard(context.stage)
    hazard *= 1.0 + 0.1 * prior_lines
    hazard *= 1.0 + 0.5 * context.urgency / 100.0

    response = 50.0 - 5.0 * prior_lines - 5.0 * factors.performance_status
    quality_of_life = (
        85.0
        - 10.0 * factors.performance_status
        - 3.0 * len(context.current_symptoms)
        - 2.0 * len(context.comorbidities)
    )

    susceptibility = 1.0 + 0.1 * len(context.comorbidities) + 0.1 * factors.performance_status
    if factors.age > 65:
        susceptibility += 0.01 * (factors.age - 65)

    return PatientBaseline(
        response=float(np.clip(response, 5.0, 95.0)),
        quality_of_life=float(np.clip(quality_of_life, 10.0, 100.0)),
        progression_hazard=float(np.clip(hazard, 0.0, 1.0)),
        toxicity_susceptibility=susceptibility,
    )


class ScenarioSampler:
    """
    Samples universes for a query under an uncertainty model.

    Same (query, model, seed, shifts) always gives the same universes.
    With seed=None every call draws fresh entropy.
    """

    def sample(
        self,
        query: ClinicalQuery,
        model: UncertaintyModel,
        seed: Optional[int] = None,
        shifts: Optional[dict[str, float]] = None,
    ) -> list[Universe]:
        """
        Draw model.universe_count universes.

        Args:
            query: Clinical query supplying the patient baseline
            model: Uncertainty model (levels, universe count)
            seed: Run seed for reproducible output
            shifts: Factor -> additive shift applied to every universe's multiplier

        Returns:
            Unevaluated universes (empty timeline, no final outcome)

        Raises:
            InvalidModel: If the model or shifts are malformed
        """
        shifts = shifts or {}
        validate_uncertainty_model(model, shifts)

        baseline = patient_baseline(query)
        factors = sorted(model.uncertainty_levels)
        roles = {factor: model.role_of(factor) for factor in factors}
        seeds = spawn_universe_seeds(seed, model.universe_count)

        universes = []
        for index, universe_seed in enumerate(seeds):
            rng = generator_for(universe_seed, SAMPLING_STREAM)
            # Every factor consumes one draw, shifted or not, so a shift
            # never changes the other factors' values.
            z = rng.standard_normal(len(factors))

            conditions = {}
            for factor, z_value in zip(factors, z):
                level = float(model.uncertainty_levels[factor])
                value = 1.0 + level * float(z_value) + shifts.get(factor, 0.0)
                conditions[factor] = float(np.clip(value, MIN_MULTIPLIER, MAX_MULTIPLIER))

            universes.append(Universe(
                universe_id=f"universe-{index}",
                index=index,
                seed=universe_seed,
                initial_conditions=conditions,
                factor_roles=roles,
                baseline=baseline,
            ))

        logger.debug(
            f"Sampled {len(universes)} universes over {len(factors)} factors"
            + (f" with shifts {shifts}" if shifts else "")
        )
        return universes
