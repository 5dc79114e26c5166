"""
Risk-Benefit Scorer.

Turns a candidate's declared risk/benefit factors and its simulated
aggregate into scalar scores, and ranks candidates for one query.

    benefit     = mean(magnitude * certainty)
    risk        = mean(probability * severity)
    suitability = benefit * (1 - risk) * robustness

Robustness penalizes treatments whose simulated outcomes vary a lot even
when their point-estimate benefit is high.
"""

from typing import Sequence

from treatment_oracle.errors import EmptyInput
from treatment_oracle.models.clinical import CandidateTreatment
from treatment_oracle.models.recommendation import (
    ExpectedOutcome,
    RankedCandidate,
    Recommendation,
    RiskBenefitScore,
)
from treatment_oracle.models.simulation import AggregateOutcome


# Mean outcome fields compared between alternatives and the primary
COMPARISON_FIELDS = [
    "overall_survival",
    "progression_free_survival",
    "quality_adjusted_life_years",
    "treatment_burden",
    "patient_satisfaction",
]


def benefit_score(candidate: CandidateTreatment) -> float:
    if not candidate.benefit_factors:
        return 0.0
    total = sum(b.magnitude * b.certainty for b in candidate.benefit_factors)
    return total / len(candidate.benefit_factors)


def risk_score(candidate: CandidateTreatment) -> float:
    if not candidate.risk_factors:
        return 0.0
    total = sum(r.probability * r.severity for r in candidate.risk_factors)
    return total / len(candidate.risk_factors)


def score(candidate: CandidateTreatment, aggregate: AggregateOutcome) -> RiskBenefitScore:
    """
    Score one candidate. Pure: same inputs always give the same scores.

    Args:
        candidate: Candidate with declared factors
        aggregate: The candidate's simulated aggregate

    Returns:
        RiskBenefitScore
    """
    benefit = benefit_score(candidate)
    risk = risk_score(candidate)
    suitability = benefit * (1.0 - risk) * aggregate.robustness_score
    return RiskBenefitScore(
        benefit_score=benefit,
        risk_score=risk,
        suitability_score=min(1.0, max(0.0, suitability)),
    )


def evidence_strength(candidate: CandidateTreatment) -> float:
    """Mean benefit certainty on a 0-100 scale."""
    certainty = candidate.mean_certainty
    return 0.0 if certainty is None else 100.0 * certainty


def confidence_level(aggregate: AggregateOutcome) -> float:
    """Blend of robustness and the chance of an acceptable outcome, 0-100."""
    return 100.0 * (0.5 * aggregate.robustness_score + 0.5 * aggregate.optimal_path_probability)


def pros_and_cons(candidate: CandidateTreatment) -> tuple[list[str], list[str]]:
    """Declared benefits and risks as short labels, most weighty first."""
    benefits = sorted(candidate.benefit_factors, key=lambda b: -b.magnitude * b.certainty)
    risks = sorted(candidate.risk_factors, key=lambda r: -r.probability * r.severity)
    pros = [f"{b.name} ({b.timeframe})" if b.timeframe else b.name for b in benefits]
    cons = [f"{r.name} ({r.probability:.0%} likely)" for r in risks]
    return pros, cons


def _ranking_key(ranked: RankedCandidate):
    return (
        -ranked.scores.suitability_score,
        -ranked.aggregate.optimal_path_probability,
        -ranked.evidence_strength,
        ranked.scores.risk_score,
        ranked.candidate.name,
    )


def rank_candidates(
    scored: Sequence[tuple[CandidateTreatment, AggregateOutcome]],
) -> list[RankedCandidate]:
    """
    Score and rank candidates.

    Order: suitability desc, then optimal path probability desc, then
    evidence strength desc, then risk asc, then name asc.

    Raises:
        EmptyInput: If there is nothing to rank
    """
    if not scored:
        raise EmptyInput("No candidates to rank")

    ranked = []
    for candidate, aggregate in scored:
        pros, cons = pros_and_cons(candidate)
        ranked.append(RankedCandidate(
            candidate=candidate,
            scores=score(candidate, aggregate),
            aggregate=aggregate,
            evidence_strength=evidence_strength(candidate),
            confidence_level=confidence_level(aggregate),
            pros=pros,
            cons=cons,
        ))
    return sorted(ranked, key=_ranking_key)


def _comparison(alternative: RankedCandidate, primary: RankedCandidate) -> dict[str, float]:
    return {
        field: (
            getattr(alternative.aggregate, field).mean
            - getattr(primary.aggregate, field).mean
        )
        for field in COMPARISON_FIELDS
    }


def expected_outcome(primary: RankedCandidate) -> ExpectedOutcome:
    aggregate = primary.aggregate
    return ExpectedOutcome(
        response_rate=100.0 * aggregate.response_rate,
        survival_benefit=aggregate.overall_survival.mean,
        quality_of_life_impact=aggregate.patient_satisfaction.mean,
        toxicity_risk=100.0 * aggregate.adverse_event_rate,
    )


def build_recommendation(
    query_id: str,
    ranked: Sequence[RankedCandidate],
    seed=None,
) -> Recommendation:
    """
    Split a ranking into primary and alternatives.

    Args:
        query_id: ID of the query being answered
        ranked: Output of rank_candidates (already ordered)
        seed: Run seed, kept so the run can be replayed

    Returns:
        Recommendation with alternatives sorted by suitability desc
    """
    if not ranked:
        raise EmptyInput("No ranked candidates")

    primary, *rest = ranked
    alternatives = [
        alt.model_copy(update={"outcome_comparison": _comparison(alt, primary)})
        for alt in rest
    ]
    return Recommendation(
        query_id=query_id,
        seed=seed,
        primary=primary,
        alternatives=alternatives,
        expected_outcome=expected_outcome(primary),
    )
