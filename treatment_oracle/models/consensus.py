"""
Data models for multidisciplinary consensus building.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from treatment_oracle.models.enums import SessionState


class ReviewerPosition(BaseModel):
    """One specialist's independent position on the recommendation."""

    model_config = ConfigDict(frozen=True)

    reviewer_id: str = Field(..., min_length=1)
    specialty: str = Field(default="")
    recommendation: str = Field(..., min_length=1)
    confidence_level: float = Field(default=50.0, ge=0.0, le=100.0)
    reasoning: str = Field(default="")
    critical_concerns: list[str] = Field(default_factory=list)


class DiscrepancyPosition(BaseModel):
    """One reviewer's side of a discrepancy, reasoning kept verbatim."""

    reviewer_id: str
    specialty: str = ""
    position: str
    reasoning: str = ""


class Discrepancy(BaseModel):
    """A split between the plurality and a minority recommendation."""

    issue: str
    positions: list[DiscrepancyPosition] = Field(default_factory=list)
    resolution_path: Optional[str] = Field(
        default=None,
        description="Filled in by the caller; never resolved automatically"
    )


class FinalConsensus(BaseModel):
    """The endorsed decision."""

    recommendation: str
    support_level: float = Field(..., ge=0.0, le=1.0, description="Agreeing / total reviewers")
    dissenting: list[str] = Field(default_factory=list, description="Reviewer IDs")
    compromises: list[str] = Field(default_factory=list)
    overridden: bool = Field(default=False, description="Caller overrode the plurality")


class ConsensusResult(BaseModel):
    """Snapshot of a consensus session."""

    model_config = ConfigDict(use_enum_values=True)

    session_id: str
    recommendation_id: str
    state: SessionState
    positions: list[ReviewerPosition] = Field(default_factory=list)
    plurality: Optional[str] = None
    agreement_level: float = Field(default=0.0, ge=0.0, le=100.0)
    major_discrepancies: list[Discrepancy] = Field(default_factory=list)
    final_consensus: Optional[FinalConsensus] = None

    @property
    def agreement_fraction(self) -> float:
        """Agreement as a fraction in [0, 1]."""
        return self.agreement_level / 100.0
