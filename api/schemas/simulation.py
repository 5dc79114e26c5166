"""Simulation API schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from treatment_oracle.models import (
    AcceptableOutcome,
    CandidateTreatment,
    ClinicalQuery,
    JobStatus,
    Recommendation,
    UncertaintyModel,
)


class SimulationRequest(BaseModel):
    """Request to start a simulation."""
    query: ClinicalQuery
    candidates: list[CandidateTreatment] = Field(..., description="Treatments to compare")
    uncertainty_model: UncertaintyModel = Field(default_factory=UncertaintyModel)
    seed: Optional[int] = Field(default=None, ge=0, description="Fixed seed for a reproducible run")
    acceptable_outcome: Optional[AcceptableOutcome] = None


class SimulationStarted(BaseModel):
    simulation_id: str
    status_url: str


class SimulationStatus(BaseModel):
    """Polling view of a simulation job."""
    simulation_id: str
    status: JobStatus
    created_at: float
    recommendation: Optional[Recommendation] = None
    error: Optional[dict] = None
