"""
Oracle Engine - Main entry point for the treatment oracle.

This module ties together all components:
- Scenario sampling and trajectory evaluation (simulation pipeline)
- Risk-benefit scoring and recommendation building
- Sensitivity analysis of a finished recommendation
- Multidisciplinary consensus sessions
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from treatment_oracle.config import EngineSettings
from treatment_oracle.consensus.builder import ConsensusBuilder
from treatment_oracle.errors import SimulationTimeout
from treatment_oracle.models.clinical import CandidateTreatment, ClinicalQuery
from treatment_oracle.models.consensus import ConsensusResult, ReviewerPosition
from treatment_oracle.models.progress import ProgressStage, ProgressUpdate
from treatment_oracle.models.recommendation import (
    DecisionConfidence,
    Recommendation,
    SensitivityReport,
)
from treatment_oracle.models.simulation import AcceptableOutcome, UncertaintyModel
from treatment_oracle.pipeline import SimulationPipeline
from treatment_oracle.scoring.confidence import decision_confidence
from treatment_oracle.scoring.scorer import build_recommendation
from treatment_oracle.sensitivity.analyzer import SensitivityAnalyzer
from treatment_oracle.simulation.random_source import new_run_seed


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_deadline(awaitable: Awaitable[T], seconds: Optional[float]) -> T:
    """
    Await with a caller-imposed deadline.

    Args:
        awaitable: Work to await
        seconds: Deadline in seconds (None waits forever)

    Raises:
        SimulationTimeout: If the deadline passes first; the work is cancelled
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise SimulationTimeout(
            f"Simulation exceeded deadline of {seconds}s",
            details={"deadline_seconds": seconds},
        ) from e


class OracleEngine:
    """
    Main orchestrator for treatment simulations.

    Manages the complete lifecycle:
    1. Validate the query, candidates and uncertainty model
    2. Sample universes once and evaluate every candidate on them
    3. Aggregate, score and rank into a Recommendation
    4. Optionally stress-test the recommendation
    5. Collect reviewer positions into a consensus
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        pipeline: Optional[SimulationPipeline] = None,
        consensus: Optional[ConsensusBuilder] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Engine settings (loaded from config if not provided)
            pipeline: Optional simulation pipeline
            consensus: Optional consensus registry
        """
        self.settings = settings or (pipeline.settings if pipeline else EngineSettings.from_config())
        self.pipeline = pipeline or SimulationPipeline(self.settings)
        self.sensitivity = SensitivityAnalyzer(self.pipeline, self.settings.sensitivity)
        self.consensus = consensus or ConsensusBuilder(
            max_finalized=self.settings.consensus.max_finalized_sessions,
        )

    async def run_simulation(
        self,
        query: ClinicalQuery,
        candidates: Sequence[CandidateTreatment],
        model: UncertaintyModel,
        seed: Optional[int] = None,
        acceptable: Optional[AcceptableOutcome] = None,
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
    ) -> Recommendation:
        """
        Simulate every candidate and build a recommendation.

        Args:
            query: The clinical query
            candidates: Candidate treatments to compare
            model: Uncertainty model
            seed: Run seed (fresh entropy if not provided; stored on the result)
            acceptable: Thresholds for an acceptable outcome
            progress_callback: Optional callback for live progress updates

        Returns:
            Recommendation with the primary and ranked alternatives
        """
        def report_progress(stage: ProgressStage, message: str, percent: int, **detail):
            if progress_callback:
                progress_callback(ProgressUpdate(
                    stage=stage,
                    message=message,
                    percent=percent,
                    detail=detail,
                ))

        if seed is None:
            seed = new_run_seed()

        start_time = time.time()
        report_progress(
            ProgressStage.INITIALIZING,
            "Initializing simulation...",
            5,
            num_candidates=len(candidates),
            universe_count=model.universe_count,
        )

        try:
            ranked = await self.pipeline.run(
                query,
                candidates,
                model,
                seed=seed,
                acceptable=acceptable,
                progress_callback=progress_callback,
            )
        except Exception as e:
            report_progress(ProgressStage.ERROR, f"Simulation failed: {e}", 100)
            raise

        recommendation = build_recommendation(query.query_id, ranked, seed=seed)
        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            f"Simulation {recommendation.recommendation_id}: primary {recommendation.primary.name} "
            f"(suitability {recommendation.primary.suitability_score:.3f}) in {duration_ms}ms"
        )
        report_progress(
            ProgressStage.COMPLETE,
            f"Recommendation: {recommendation.primary.name}",
            100,
            duration_ms=duration_ms,
        )
        return recommendation

    async def run_sensitivity(
        self,
        query: ClinicalQuery,
        recommendation: Recommendation,
        model: UncertaintyModel,
        acceptable: Optional[AcceptableOutcome] = None,
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
    ) -> SensitivityReport:
        """
        Stress-test a recommendation, reusing its seed.

        Args:
            query: The query the recommendation answers
            recommendation: Output of run_simulation
            model: Uncertainty model used for the run
            acceptable: Thresholds for an acceptable outcome
            progress_callback: Optional callback for live progress updates
        """
        return await self.sensitivity.analyze(
            query,
            recommendation.primary.candidate,
            [alt.candidate for alt in recommendation.alternatives],
            model,
            seed=recommendation.seed,
            acceptable=acceptable,
            recommendation_id=recommendation.recommendation_id,
            progress_callback=progress_callback,
        )

    def decision_confidence(
        self,
        recommendation: Recommendation,
        report: SensitivityReport,
        session_id: Optional[str] = None,
    ) -> DecisionConfidence:
        """Confidence summary, including reviewer agreement when a session is given."""
        consensus = self.get_consensus(session_id) if session_id else None
        return decision_confidence(recommendation, report, consensus)

    # ------------------------------------------------------------------
    # Consensus
    # ------------------------------------------------------------------

    def open_consensus_session(self, recommendation: Recommendation) -> str:
        return self.consensus.open_session(recommendation)

    def submit_position(self, session_id: str, position: ReviewerPosition) -> ConsensusResult:
        return self.consensus.submit_position(session_id, position)

    def reconcile(self, session_id: str) -> ConsensusResult:
        return self.consensus.reconcile(session_id)

    def annotate_discrepancy(
        self, session_id: str, index: int, resolution_path: str
    ) -> ConsensusResult:
        return self.consensus.annotate_discrepancy(session_id, index, resolution_path)

    def finalize(
        self,
        session_id: str,
        resolution: Optional[str] = None,
        compromises: Optional[list[str]] = None,
    ) -> ConsensusResult:
        return self.consensus.finalize(session_id, resolution, compromises)

    def get_consensus(self, session_id: str) -> ConsensusResult:
        return self.consensus.get(session_id)

    def close(self):
        """Release the worker pool."""
        self.pipeline.close()
