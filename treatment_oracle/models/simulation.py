"""
Data models for multi-universe simulation.

Universes are ephemeral: they are sampled, evaluated, aggregated and
discarded. Only AggregateOutcome survives into a Recommendation.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from treatment_oracle.models.enums import DiseaseStatus, FactorRole


# Keyword -> role lookup used when a factor has no explicit role.
# Checked in order, first match wins.
FACTOR_ROLE_KEYWORDS: list[tuple[str, FactorRole]] = [
    ("toxic", FactorRole.TOXICITY),
    ("side effect", FactorRole.TOXICITY),
    ("adverse", FactorRole.TOXICITY),
    ("progression", FactorRole.PROGRESSION),
    ("resistance", FactorRole.PROGRESSION),
    ("recurrence", FactorRole.PROGRESSION),
    ("efficacy", FactorRole.EFFICACY),
    ("response", FactorRole.EFFICACY),
    ("genetic", FactorRole.EFFICACY),
    ("metabolism", FactorRole.TOLERANCE),
    ("tolerance", FactorRole.TOLERANCE),
    ("immune", FactorRole.TOLERANCE),
    ("compliance", FactorRole.TOLERANCE),
]


class UncertaintyModel(BaseModel):
    """
    Uncertainty declared for one simulation request.

    Level bounds are not enforced here; the sampler validates them and
    raises InvalidModel.
    """

    model_config = ConfigDict(use_enum_values=True)

    uncertainty_levels: dict[str, float] = Field(
        default_factory=dict,
        description="Factor name -> uncertainty level in [0, 1]"
    )
    universe_count: int = Field(default=1000, description="Number of universes to sample")
    time_horizon: int = Field(default=12, description="Horizon in months")
    variability_factors: list[str] = Field(
        default_factory=list,
        description="Free-text sources of variability shown to clinicians"
    )
    factor_roles: dict[str, FactorRole] = Field(
        default_factory=dict,
        description="Explicit roles; overrides keyword inference"
    )

    def role_of(self, factor: str) -> FactorRole:
        """Resolve the role of a factor, explicit first, then by keyword."""
        if factor in self.factor_roles:
            return FactorRole(self.factor_roles[factor])
        lowered = factor.lower()
        for keyword, role in FACTOR_ROLE_KEYWORDS:
            if keyword in lowered:
                return role
        return FactorRole.GENERAL


class AcceptableOutcome(BaseModel):
    """Thresholds a universe must beat to count towards optimal_path_probability."""

    overall_survival: float = Field(default=70.0, ge=0.0, le=100.0)
    progression_free_survival: Optional[float] = Field(default=None, ge=0.0)
    quality_adjusted_life_years: Optional[float] = Field(default=None, ge=0.0)
    max_treatment_burden: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class PatientBaseline(BaseModel):
    """Starting point of a trajectory derived from the clinical query."""

    response: float = Field(..., ge=0.0, le=100.0)
    quality_of_life: float = Field(..., ge=0.0, le=100.0)
    progression_hazard: float = Field(..., ge=0.0, le=1.0, description="Monthly hazard")
    toxicity_susceptibility: float = Field(..., ge=0.0)


class TimeStep(BaseModel):
    """State of one universe at one month."""

    model_config = ConfigDict(use_enum_values=True)

    time_point: int = Field(..., ge=1, description="Month (1-indexed)")
    disease_status: DiseaseStatus
    quality_of_life: float = Field(..., ge=0.0, le=100.0)
    treatment_response: float = Field(..., ge=0.0, le=100.0)
    side_effects: list[str] = Field(default_factory=list)
    interventions: list[str] = Field(default_factory=list)


class FinalOutcome(BaseModel):
    """Outcome of a universe at the horizon."""

    overall_survival: float = Field(..., ge=0.0, le=100.0, description="Survival probability (%)")
    progression_free_survival: float = Field(..., ge=0.0, description="Months before progression")
    quality_adjusted_life_years: float = Field(..., ge=0.0)
    treatment_burden: float = Field(..., ge=0.0, le=100.0)
    patient_satisfaction: float = Field(..., ge=0.0, le=100.0)


OUTCOME_FIELDS = list(FinalOutcome.model_fields)


class Universe(BaseModel):
    """One sampled trajectory. Timeline and outcome are filled by the evaluator."""

    universe_id: str
    index: int = Field(..., ge=0)
    seed: int = Field(..., description="Per-universe seed spawned from the run seed")
    initial_conditions: dict[str, float] = Field(
        default_factory=dict,
        description="Factor name -> sampled multiplier"
    )
    factor_roles: dict[str, FactorRole] = Field(default_factory=dict)
    baseline: PatientBaseline
    treatment_path: Optional[str] = None
    timeline: list[TimeStep] = Field(default_factory=list)
    final_outcome: Optional[FinalOutcome] = None

    @property
    def is_evaluated(self) -> bool:
        return self.final_outcome is not None

    def multiplier(self, role: FactorRole) -> float:
        """Product of the multipliers of every factor with the given role."""
        value = 1.0
        for factor, factor_role in self.factor_roles.items():
            if factor_role == role:
                value *= self.initial_conditions.get(factor, 1.0)
        return value


class OutcomeStatistics(BaseModel):
    """Distribution summary of one FinalOutcome field."""

    mean: float
    std: float
    min: float
    max: float
    percentiles: dict[str, float] = Field(
        default_factory=dict,
        description="Keyed 'p5', 'p25', ..."
    )


class ConvergenceDiagnostic(BaseModel):
    """Monte Carlo precision of mean overall survival."""

    standard_error: float
    relative_half_width: float = Field(..., description="95% CI half-width / mean")
    converged: bool


class AggregateOutcome(BaseModel):
    """Statistics over all universes of one candidate."""

    treatment: str
    universe_count: int = Field(..., ge=1)

    overall_survival: OutcomeStatistics
    progression_free_survival: OutcomeStatistics
    quality_adjusted_life_years: OutcomeStatistics
    treatment_burden: OutcomeStatistics
    patient_satisfaction: OutcomeStatistics

    optimal_path_probability: float = Field(..., ge=0.0, le=1.0)
    robustness_score: float = Field(..., ge=0.0, le=1.0)
    tail_risk: float = Field(..., description="Mean overall survival of the worst 5% of universes")
    response_rate: float = Field(..., ge=0.0, le=1.0, description="Fraction ending Responding")
    adverse_event_rate: float = Field(..., ge=0.0, le=1.0, description="Fraction with any side effect")
    adverse_event_incidence: dict[str, float] = Field(default_factory=dict)
    convergence: ConvergenceDiagnostic
