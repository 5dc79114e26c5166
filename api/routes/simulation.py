"""Simulation API routes: start a job, poll it, stress-test the result."""

import logging
import time
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException

from api.schemas.simulation import SimulationRequest, SimulationStarted, SimulationStatus
from api.state import get_completed_job, get_engine, get_job, prune_jobs, simulations
from treatment_oracle.engine import run_with_deadline
from treatment_oracle.errors import OracleError
from treatment_oracle.models import DecisionConfidence, JobStatus, SensitivityReport
from treatment_oracle.pipeline import validate_candidates
from treatment_oracle.simulation.evaluator import validate_horizon
from treatment_oracle.simulation.sampler import validate_uncertainty_model

logger = logging.getLogger(__name__)

router = APIRouter()


async def run_simulation_job(simulation_id: str):
    """Run one job to completion, recording the outcome on the job."""
    job = simulations[simulation_id]
    request: SimulationRequest = job["request"]
    engine = get_engine()

    job["status"] = JobStatus.RUNNING
    try:
        job["recommendation"] = await run_with_deadline(
            engine.run_simulation(
                request.query,
                request.candidates,
                request.uncertainty_model,
                seed=request.seed,
                acceptable=request.acceptable_outcome,
            ),
            engine.settings.api.simulation_deadline_seconds,
        )
        job["status"] = JobStatus.COMPLETE
    except OracleError as e:
        logger.warning(f"Simulation {simulation_id} failed: {e.message}")
        job["status"] = JobStatus.FAILED
        job["error"] = e.to_dict()
    except Exception as e:
        logger.exception(f"Simulation {simulation_id} crashed")
        job["status"] = JobStatus.FAILED
        job["error"] = {"error": str(e), "error_type": type(e).__name__}


@router.post("/simulations")
async def start_simulation(
    request: SimulationRequest,
    background_tasks: BackgroundTasks,
) -> SimulationStarted:
    """
    Validate the request and start a simulation in the background.
    Poll the status URL for the recommendation.
    """
    validate_candidates(request.candidates)
    validate_uncertainty_model(request.uncertainty_model)
    validate_horizon(request.uncertainty_model.time_horizon)

    simulation_id = f"sim_{uuid.uuid4().hex[:12]}"
    simulations[simulation_id] = {
        "request": request,
        "status": JobStatus.PENDING,
        "created_at": time.time(),
        "recommendation": None,
        "sensitivity": None,
        "error": None,
    }
    prune_jobs(get_engine().settings.api.max_jobs)
    background_tasks.add_task(run_simulation_job, simulation_id)

    return SimulationStarted(
        simulation_id=simulation_id,
        status_url=f"/api/simulations/{simulation_id}",
    )


@router.get("/simulations/{simulation_id}")
async def get_simulation(simulation_id: str) -> SimulationStatus:
    """Get status and, once complete, the recommendation."""
    job = get_job(simulation_id)
    return SimulationStatus(
        simulation_id=simulation_id,
        status=job["status"],
        created_at=job["created_at"],
        recommendation=job["recommendation"],
        error=job["error"],
    )


@router.post("/simulations/{simulation_id}/sensitivity")
async def run_sensitivity(simulation_id: str) -> SensitivityReport:
    """Stress-test a completed simulation's recommendation."""
    job = get_completed_job(simulation_id)
    request: SimulationRequest = job["request"]
    engine = get_engine()

    report = await run_with_deadline(
        engine.run_sensitivity(
            request.query,
            job["recommendation"],
            request.uncertainty_model,
            acceptable=request.acceptable_outcome,
        ),
        engine.settings.api.simulation_deadline_seconds,
    )
    job["sensitivity"] = report
    return report


@router.get("/simulations/{simulation_id}/confidence")
async def get_confidence(simulation_id: str, session_id: Optional[str] = None) -> DecisionConfidence:
    """
    Confidence summary for a completed, stress-tested simulation.
    Pass session_id to include reviewer agreement.
    """
    job = get_completed_job(simulation_id)
    report = job.get("sensitivity")
    if report is None:
        raise HTTPException(
            status_code=409,
            detail=f"Run sensitivity analysis for {simulation_id} first",
        )
    return get_engine().decision_confidence(job["recommendation"], report, session_id)
