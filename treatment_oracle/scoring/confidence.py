"""
Decision confidence.

Summarizes how far a recommendation can be trusted by combining the
primary's scores, its sensitivity report and, once reviewers have
reconciled, their agreement.
"""

from typing import Optional

from treatment_oracle.models.consensus import ConsensusResult
from treatment_oracle.models.enums import SessionState
from treatment_oracle.models.recommendation import (
    ConfidenceMetrics,
    DecisionConfidence,
    Recommendation,
    SensitivityFactor,
    SensitivityReport,
    UncertaintyFactor,
)


def _information_needed(factor: SensitivityFactor) -> str:
    threshold = factor.critical_threshold
    if factor.within_declared_range:
        return (
            f"Narrow the uncertainty on {factor.factor}: the lead changes "
            f"at a shift of {threshold:.2f}"
        )
    if threshold is not None:
        return (
            f"Monitor {factor.factor}: the lead changes only beyond the "
            f"declared range, at {threshold:.2f}"
        )
    return f"None: {factor.factor} does not change the lead"


def decision_confidence(
    recommendation: Recommendation,
    report: SensitivityReport,
    consensus: Optional[ConsensusResult] = None,
) -> DecisionConfidence:
    """
    Build the confidence summary for a recommendation.

    Args:
        recommendation: Output of run_simulation
        report: Sensitivity report for the same recommendation
        consensus: Optional consensus session result; its agreement counts
            once the session has been reconciled

    Returns:
        DecisionConfidence
    """
    primary = recommendation.primary
    risks = primary.candidate.risk_factors
    mitigated = sum(1 for r in risks if r.mitigation)
    precision = primary.aggregate.convergence.relative_half_width

    consensus_level = None
    if consensus is not None and consensus.state != SessionState.COLLECTING:
        consensus_level = consensus.agreement_level

    metrics = ConfidenceMetrics(
        evidence_quality=primary.evidence_strength,
        data_completeness=100.0 * (1.0 - min(1.0, max(0.0, precision))),
        consensus_level=consensus_level,
        outcome_prediction=primary.confidence_level,
        risk_assessment=100.0 * mitigated / len(risks) if risks else 100.0,
    )

    return DecisionConfidence(
        recommendation_id=recommendation.recommendation_id,
        confidence_metrics=metrics,
        uncertainty_factors=[
            UncertaintyFactor(
                factor=f.factor,
                uncertainty_level=f.uncertainty_level,
                impact_on_decision=100.0 * f.impact_magnitude,
                information_needed=_information_needed(f),
            )
            for f in report.factors
        ],
        robust_decision=report.robust_decision,
        critical_assumptions=list(report.critical_assumptions),
    )
