"""
Data models for scored candidates, recommendations and sensitivity reports.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from treatment_oracle.models.clinical import CandidateTreatment
from treatment_oracle.models.enums import FactorRole
from treatment_oracle.models.simulation import AggregateOutcome


class RiskBenefitScore(BaseModel):
    """Scalar scores for one candidate."""

    benefit_score: float = Field(..., ge=0.0, le=1.0)
    risk_score: float = Field(..., ge=0.0, le=1.0)
    suitability_score: float = Field(..., ge=0.0, le=1.0)


class ExpectedOutcome(BaseModel):
    """Headline numbers for the primary recommendation (all 0-100)."""

    response_rate: float
    survival_benefit: float
    quality_of_life_impact: float
    toxicity_risk: float


class RankedCandidate(BaseModel):
    """A candidate together with its aggregate and scores."""

    candidate: CandidateTreatment
    scores: RiskBenefitScore
    aggregate: AggregateOutcome
    evidence_strength: float = Field(..., ge=0.0, le=100.0)
    confidence_level: float = Field(..., ge=0.0, le=100.0)
    pros: list[str] = Field(default_factory=list, description="Declared benefits, strongest first")
    cons: list[str] = Field(default_factory=list, description="Declared risks, most serious first")
    outcome_comparison: dict[str, float] = Field(
        default_factory=dict,
        description="Mean outcome deltas against the primary (alternatives only)"
    )

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def suitability_score(self) -> float:
        return self.scores.suitability_score


class Recommendation(BaseModel):
    """Ranked result of a simulation run."""

    recommendation_id: str = Field(default_factory=lambda: f"rec_{uuid.uuid4().hex[:12]}")
    query_id: str
    seed: Optional[int] = Field(default=None, description="Run seed, reused by sensitivity analysis")
    primary: RankedCandidate
    alternatives: list[RankedCandidate] = Field(default_factory=list)
    expected_outcome: ExpectedOutcome
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def ranking(self) -> list[RankedCandidate]:
        return [self.primary, *self.alternatives]


class SensitivityFactor(BaseModel):
    """Impact of one uncertain factor on the decision."""

    model_config = ConfigDict(use_enum_values=True)

    factor: str
    role: FactorRole
    uncertainty_level: float = Field(..., ge=0.0, le=1.0)
    impact_magnitude: float = Field(..., ge=0.0, le=1.0)
    raw_delta: float = Field(..., ge=0.0, description="|change in primary suitability| at the upper bound")
    critical_threshold: Optional[float] = Field(
        default=None,
        description="Smallest shift at which the primary loses the lead (0.0 if it never leads); None if none found"
    )
    within_declared_range: bool = False


class AlternativeScenario(BaseModel):
    """What happens to the decision when one factor sits at its upper bound."""

    scenario: str
    factor: str
    shift: float
    recommendation_change: bool


class SensitivityReport(BaseModel):
    """Sensitivity of the primary recommendation to each uncertain factor."""

    recommendation_id: str
    primary: str
    compared_against: Optional[str] = None
    baseline_leader: Optional[str] = Field(
        default=None,
        description="Leader of the unperturbed re-run; differs from primary when the ranking is inverted"
    )
    universe_count: int = Field(..., ge=0, description="Universes per re-run")
    factors: list[SensitivityFactor] = Field(default_factory=list)
    robust_decision: bool = Field(
        default=True,
        description="True iff no factor has a critical threshold within its declared range"
    )
    critical_assumptions: list[str] = Field(default_factory=list)
    alternative_scenarios: list[AlternativeScenario] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class ConfidenceMetrics(BaseModel):
    """How much to trust a recommendation, each on a 0-100 scale."""

    evidence_quality: float = Field(..., ge=0.0, le=100.0)
    data_completeness: float = Field(
        ..., ge=0.0, le=100.0,
        description="Monte Carlo precision of the primary's mean overall survival"
    )
    consensus_level: Optional[float] = Field(
        default=None, ge=0.0, le=100.0,
        description="Reviewer agreement; None until a consensus session has reconciled"
    )
    outcome_prediction: float = Field(..., ge=0.0, le=100.0)
    risk_assessment: float = Field(
        ..., ge=0.0, le=100.0,
        description="Share of the primary's declared risks with a mitigation"
    )


class UncertaintyFactor(BaseModel):
    """One uncertain factor as it bears on the decision."""

    factor: str
    uncertainty_level: float = Field(..., ge=0.0, le=1.0)
    impact_on_decision: float = Field(..., ge=0.0, le=100.0)
    information_needed: str


class DecisionConfidence(BaseModel):
    """Confidence summary combining scores, sensitivity and consensus."""

    confidence_id: str = Field(default_factory=lambda: f"confidence_{uuid.uuid4().hex[:12]}")
    recommendation_id: str
    confidence_metrics: ConfidenceMetrics
    uncertainty_factors: list[UncertaintyFactor] = Field(default_factory=list)
    robust_decision: bool
    critical_assumptions: list[str] = Field(default_factory=list)
