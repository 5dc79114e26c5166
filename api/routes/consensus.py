"""Consensus API routes."""

from fastapi import APIRouter, HTTPException

from api.schemas.consensus import (
    FinalizeRequest,
    OpenSessionRequest,
    OpenSessionResponse,
    ResolutionRequest,
)
from api.state import get_completed_job, get_engine
from treatment_oracle.models import ConsensusResult, ReviewerPosition

router = APIRouter()


@router.post("/consensus/sessions")
async def open_session(request: OpenSessionRequest) -> OpenSessionResponse:
    """Open a review session on a completed simulation's recommendation."""
    recommendation = get_completed_job(request.simulation_id)["recommendation"]
    session_id = get_engine().open_consensus_session(recommendation)
    return OpenSessionResponse(
        session_id=session_id,
        recommendation_id=recommendation.recommendation_id,
    )


@router.post("/consensus/sessions/{session_id}/positions")
async def submit_position(session_id: str, position: ReviewerPosition) -> ConsensusResult:
    return get_engine().submit_position(session_id, position)


@router.post("/consensus/sessions/{session_id}/reconcile")
async def reconcile(session_id: str) -> ConsensusResult:
    return get_engine().reconcile(session_id)


@router.post("/consensus/sessions/{session_id}/discrepancies/{index}/resolution")
async def annotate_discrepancy(
    session_id: str,
    index: int,
    request: ResolutionRequest,
) -> ConsensusResult:
    """Attach a resolution path to one discrepancy."""
    try:
        return get_engine().annotate_discrepancy(session_id, index, request.resolution_path)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"No discrepancy at index {index}")


@router.post("/consensus/sessions/{session_id}/finalize")
async def finalize(session_id: str, request: FinalizeRequest) -> ConsensusResult:
    return get_engine().finalize(session_id, request.resolution, request.compromises)


@router.get("/consensus/sessions/{session_id}")
async def get_session(session_id: str) -> ConsensusResult:
    return get_engine().get_consensus(session_id)
