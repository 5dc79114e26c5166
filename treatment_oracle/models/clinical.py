"""
Data models for clinical queries and candidate treatments.

A ClinicalQuery is owned by the caller and is immutable once submitted.
CandidateTreatments are read-only to the engine.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from treatment_oracle.models.enums import QueryType


class ClinicalContext(BaseModel):
    """
    Disease-side context of the patient.

    genetic_profile is carried for the caller and reviewers only; the
    simulation does not read it. Marker-specific effects belong in the
    candidates' declared benefit factors.
    """

    model_config = ConfigDict(frozen=True)

    cancer_type: str = Field(..., description="e.g. 'Breast Cancer'")
    stage: str = Field(default="II", description="Stage I-IV")
    prior_treatments: list[str] = Field(default_factory=list)
    comorbidities: list[str] = Field(default_factory=list)
    genetic_profile: list[str] = Field(
        default_factory=list,
        description="Genetic markers, e.g. BRCA1, TP53, KRAS"
    )
    current_symptoms: list[str] = Field(default_factory=list)
    urgency: int = Field(default=50, ge=0, le=100, description="Decision urgency (0-100)")


class PatientFactors(BaseModel):
    """
    Patient-level preference and fitness factors.

    Only age and performance_status feed the simulation. Goals,
    preferences, family and cultural factors are passed through for
    reviewers.
    """

    model_config = ConfigDict(frozen=True)

    age: int = Field(..., ge=0, le=120)
    performance_status: int = Field(
        default=1,
        ge=0,
        le=4,
        description="ECOG performance status (0 = fully active, 4 = bedbound)"
    )
    quality_of_life_goals: list[str] = Field(default_factory=list)
    treatment_preferences: list[str] = Field(default_factory=list)
    family_dynamics: str = Field(default="")
    cultural_factors: list[str] = Field(default_factory=list)


class ClinicalQuery(BaseModel):
    """A question submitted to the oracle for one patient."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    query_id: str = Field(default_factory=lambda: f"query_{uuid.uuid4().hex[:12]}")
    patient_id: str = Field(default="")
    oncologist_id: str = Field(default="")
    query_type: QueryType = Field(default=QueryType.TREATMENT_SELECTION)
    timestamp: datetime = Field(default_factory=datetime.now)
    clinical_context: ClinicalContext
    patient_factors: PatientFactors


class RiskFactor(BaseModel):
    """A named risk declared for a treatment."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    probability: float = Field(..., ge=0.0, le=1.0)
    severity: float = Field(..., ge=0.0, le=1.0)
    mitigation: str = Field(default="", description="e.g. 'Growth factor support'")


class BenefitFactor(BaseModel):
    """A named benefit declared for a treatment."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    magnitude: float = Field(..., ge=0.0, le=1.0)
    timeframe: str = Field(default="", description="e.g. '3-6 months'")
    certainty: float = Field(..., ge=0.0, le=1.0)


class CandidateTreatment(BaseModel):
    """A named treatment path under evaluation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    reasoning: str = Field(default="")
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    benefit_factors: list[BenefitFactor] = Field(default_factory=list)

    @property
    def mean_certainty(self) -> Optional[float]:
        """Mean certainty across declared benefits, None when there are none."""
        if not self.benefit_factors:
            return None
        return sum(b.certainty for b in self.benefit_factors) / len(self.benefit_factors)
