"""Consensus API schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class OpenSessionRequest(BaseModel):
    """Open a consensus session on a completed simulation."""
    simulation_id: str


class OpenSessionResponse(BaseModel):
    session_id: str
    recommendation_id: str


class ResolutionRequest(BaseModel):
    resolution_path: str = Field(..., min_length=1)


class FinalizeRequest(BaseModel):
    """Finalize with the plurality, or override it."""
    resolution: Optional[str] = Field(default=None, description="Overrides the plurality when set")
    compromises: list[str] = Field(default_factory=list)
