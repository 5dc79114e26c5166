"""Process-wide engine and in-memory job store shared by the routers."""

from typing import Optional

from fastapi import HTTPException

from treatment_oracle.engine import OracleEngine
from treatment_oracle.models import JobStatus

# In-memory store for simulation jobs (in production, use Redis)
simulations: dict = {}

_engine: Optional[OracleEngine] = None


def get_engine() -> OracleEngine:
    """Create the engine on first use."""
    global _engine
    if _engine is None:
        _engine = OracleEngine()
    return _engine


def shutdown_engine():
    global _engine
    if _engine is not None:
        _engine.close()
        _engine = None


def prune_jobs(max_jobs: Optional[int]):
    """Drop the oldest finished jobs until at most max_jobs remain. Pending and running jobs stay."""
    if max_jobs is None:
        return
    finished = [
        simulation_id
        for simulation_id, job in simulations.items()
        if job["status"] in (JobStatus.COMPLETE, JobStatus.FAILED)
    ]
    excess = len(simulations) - max_jobs
    for simulation_id in finished[:max(0, excess)]:
        del simulations[simulation_id]


def get_job(simulation_id: str) -> dict:
    if simulation_id not in simulations:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return simulations[simulation_id]


def get_completed_job(simulation_id: str) -> dict:
    """Return a job whose recommendation is ready, or 409."""
    job = get_job(simulation_id)
    if job["status"] != JobStatus.COMPLETE:
        raise HTTPException(
            status_code=409,
            detail=f"Simulation {simulation_id} is {job['status'].value}",
        )
    return job
