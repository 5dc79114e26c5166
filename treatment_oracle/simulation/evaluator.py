"""
Trajectory Evaluator.

Advances one sampled universe month by month under one candidate
treatment and derives its FinalOutcome from the resulting timeline.

Each month consumes draws in a fixed order:
    1. one uniform for the disease status transition
    2. one uniform per declared risk factor (side effects)
    3. two normals for response and quality-of-life noise
so an injected DrawSource that replays the same numbers reproduces the
same trajectory exactly.
"""

from typing import Optional

from treatment_oracle.errors import InvalidHorizon
from treatment_oracle.models.clinical import CandidateTreatment
from treatment_oracle.models.enums import DiseaseStatus, FactorRole
from treatment_oracle.models.simulation import FinalOutcome, TimeStep, Universe
from treatment_oracle.scoring.scorer import benefit_score
from treatment_oracle.simulation.random_source import GeneratorDrawSource
from treatment_oracle.utils.protocols import DrawSource


RESPONSE_NOISE_SD = 4.0
QOL_NOISE_SD = 3.0
NOISE_CLIP = 3.0  # Perturbations are bounded to +/- 3 sigma
MAX_SIDE_EFFECT_PROBABILITY = 0.95
MIN_TOLERANCE = 0.05
RE_EVALUATION = "Treatment re-evaluation"

_IMPROVE = {
    DiseaseStatus.PROGRESSIVE: DiseaseStatus.STABLE,
    DiseaseStatus.STABLE: DiseaseStatus.RESPONDING,
    DiseaseStatus.RESPONDING: DiseaseStatus.RESPONDING,
}


def validate_horizon(horizon_months) -> None:
    """Raise InvalidHorizon unless the horizon is a positive whole number of months."""
    if isinstance(horizon_months, bool) or not isinstance(horizon_months, int) or horizon_months <= 0:
        raise InvalidHorizon(
            f"Horizon must be a positive number of months, got {horizon_months}",
            details={"horizon_months": horizon_months},
        )


def _clip(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _response_drift(status: DiseaseStatus, efficacy: float) -> float:
    if status == DiseaseStatus.RESPONDING:
        return 3.0 + 5.0 * efficacy
    if status == DiseaseStatus.STABLE:
        return 4.0 * efficacy - 1.0
    return -6.0


def _quality_drift(status: DiseaseStatus) -> float:
    if status == DiseaseStatus.RESPONDING:
        return 2.0
    if status == DiseaseStatus.STABLE:
        return 0.0
    return -5.0


def final_outcome(
    timeline: list[TimeStep],
    risk_factor_count: int,
) -> FinalOutcome:
    """
    Compute the outcome at the horizon from a complete timeline.

    Overall survival is monotonic in the fraction of non-Progressive months.
    Progression-free survival counts the months before the first
    Progressive month (the full horizon if there is none).
    """
    months = len(timeline)
    controlled = sum(1 for step in timeline if step.disease_status != DiseaseStatus.PROGRESSIVE)
    controlled_fraction = controlled / months
    mean_response = sum(step.treatment_response for step in timeline) / months
    mean_quality = sum(step.quality_of_life for step in timeline) / months

    overall_survival = 100.0 * (0.3 + 0.5 * controlled_fraction + 0.2 * mean_response / 100.0)

    progression_free = float(months)
    for step in timeline:
        if step.disease_status == DiseaseStatus.PROGRESSIVE:
            progression_free = float(step.time_point - 1)
            break

    qaly = sum(step.quality_of_life for step in timeline) / 100.0 / 12.0

    side_effect_count = sum(len(step.side_effects) for step in timeline)
    intervention_count = sum(len(step.interventions) for step in timeline)
    side_effect_density = side_effect_count / (months * max(1, risk_factor_count))
    intervention_density = min(1.0, intervention_count / (months * 2))
    burden = 100.0 * (0.6 * side_effect_density + 0.4 * intervention_density)

    satisfaction = 0.5 * mean_quality + 0.3 * mean_response + 0.2 * (100.0 - burden)

    return FinalOutcome(
        overall_survival=_clip(overall_survival, 0.0, 100.0),
        progression_free_survival=progression_free,
        quality_adjusted_life_years=max(0.0, qaly),
        treatment_burden=_clip(burden, 0.0, 100.0),
        patient_satisfaction=_clip(satisfaction, 0.0, 100.0),
    )


class TrajectoryEvaluator:
    """
    Evaluates universes under candidate treatments.

    Stateless: one instance can be shared by any number of workers.
    """

    def evaluate(
        self,
        universe: Universe,
        candidate: CandidateTreatment,
        horizon_months: int,
        draws: Optional[DrawSource] = None,
    ) -> Universe:
        """
        Advance a universe through horizon_months steps.

        Args:
            universe: Sampled universe (timeline is ignored if present)
            candidate: Treatment applied in this universe
            horizon_months: Number of monthly steps
            draws: Optional draw source; defaults to the universe's own stream

        Returns:
            Copy of the universe with timeline and final outcome filled in

        Raises:
            InvalidHorizon: If horizon_months <= 0
        """
        validate_horizon(horizon_months)

        if draws is None:
            draws = GeneratorDrawSource.for_universe(universe.seed)

        baseline = universe.baseline
        efficacy = _clip(benefit_score(candidate) * universe.multiplier(FactorRole.EFFICACY), 0.0, 1.0)
        toxicity_scale = (
            universe.multiplier(FactorRole.TOXICITY)
            * baseline.toxicity_susceptibility
            / max(universe.multiplier(FactorRole.TOLERANCE), MIN_TOLERANCE)
        )
        progression_scale = universe.multiplier(FactorRole.PROGRESSION)
        noise_scale = universe.multiplier(FactorRole.GENERAL)
        risks = candidate.risk_factors

        status = DiseaseStatus.STABLE
        response = baseline.response
        quality = baseline.quality_of_life
        timeline = []

        for month in range(1, horizon_months + 1):
            status_draw = draws.uniform(1)[0]
            side_draws = draws.uniform(len(risks)) if risks else []
            noise = draws.normal(2)

            p_progress = _clip(
                baseline.progression_hazard
                * progression_scale
                * (1.0 - 0.7 * efficacy)
                * (1.0 - response / 200.0),
                0.005,
                0.9,
            )
            p_improve = min(_clip(0.1 + 0.5 * efficacy, 0.0, 0.95), 1.0 - p_progress)

            if status_draw < p_progress:
                status = DiseaseStatus.PROGRESSIVE
            elif status_draw < p_progress + p_improve:
                status = _IMPROVE[status]

            side_effects = []
            interventions = set()
            side_effect_severity = 0.0
            for risk, draw in zip(risks, side_draws):
                p_side = _clip(
                    risk.probability * (0.5 + risk.severity) * toxicity_scale,
                    0.0,
                    MAX_SIDE_EFFECT_PROBABILITY,
                )
                if draw < p_side:
                    side_effects.append(risk.name)
                    side_effect_severity += risk.severity
                    if risk.mitigation:
                        interventions.add(risk.mitigation)
            if status == DiseaseStatus.PROGRESSIVE:
                interventions.add(RE_EVALUATION)

            response_noise = _clip(noise[0], -NOISE_CLIP, NOISE_CLIP) * RESPONSE_NOISE_SD * noise_scale
            quality_noise = _clip(noise[1], -NOISE_CLIP, NOISE_CLIP) * QOL_NOISE_SD * noise_scale

            response = _clip(response + _response_drift(status, efficacy) + response_noise, 0.0, 100.0)
            quality = _clip(
                quality
                + _quality_drift(status)
                + 0.1 * (baseline.quality_of_life - quality)
                - 8.0 * side_effect_severity
                + quality_noise,
                0.0,
                100.0,
            )

            timeline.append(TimeStep(
                time_point=month,
                disease_status=status,
                quality_of_life=quality,
                treatment_response=response,
                side_effects=sorted(side_effects),
                interventions=sorted(interventions),
            ))

        return universe.model_copy(update={
            "treatment_path": candidate.name,
            "timeline": timeline,
            "final_outcome": final_outcome(timeline, len(risks)),
        })


def evaluate_batch(
    universes: list[Universe],
    candidates: list[CandidateTreatment],
    horizon_months: int,
) -> dict[str, list[Universe]]:
    """
    Evaluate a chunk of universes under every candidate.

    Module-level so it can be shipped to a process pool.

    Returns:
        Candidate name -> evaluated universes, in input order
    """
    evaluator = TrajectoryEvaluator()
    return {
        candidate.name: [
            evaluator.evaluate(universe, candidate, horizon_months)
            for universe in universes
        ]
        for candidate in candidates
    }
