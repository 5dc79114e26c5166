"""
Simulation pipeline: sample -> evaluate -> aggregate -> score.

Universe evaluation is fanned out in chunks across a bounded worker pool
and gathered with asyncio.gather, so a failure in any chunk fails the
whole run and a cancelled run yields nothing. Aggregation waits for every
chunk of a candidate before it starts.
"""

import asyncio
import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from treatment_oracle.config import EngineSettings
from treatment_oracle.errors import InvalidCandidate
from treatment_oracle.models.clinical import CandidateTreatment, ClinicalQuery
from treatment_oracle.models.progress import ProgressStage, ProgressUpdate
from treatment_oracle.models.recommendation import RankedCandidate
from treatment_oracle.models.simulation import AcceptableOutcome, UncertaintyModel, Universe
from treatment_oracle.scoring.scorer import rank_candidates
from treatment_oracle.simulation.aggregator import aggregate
from treatment_oracle.simulation.evaluator import evaluate_batch, validate_horizon
from treatment_oracle.simulation.sampler import ScenarioSampler, validate_uncertainty_model


logger = logging.getLogger(__name__)


def validate_candidates(candidates: Sequence[CandidateTreatment]) -> None:
    """Reject an empty candidate list or duplicate names."""
    if not candidates:
        raise InvalidCandidate("At least one candidate treatment is required")
    names = [c.name for c in candidates]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise InvalidCandidate(
            f"Candidate names must be unique: {duplicates}",
            details={"duplicates": duplicates},
        )


def _chunks(universes: list[Universe], size: int) -> list[list[Universe]]:
    size = max(1, size)
    return [universes[i:i + size] for i in range(0, len(universes), size)]


class SimulationPipeline:
    """
    Runs the full pipeline for a set of candidates.

    The worker pool is created lazily and owned by the pipeline unless one
    is passed in.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        executor: Optional[Executor] = None,
        sampler: Optional[ScenarioSampler] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Engine settings (loaded from config if not provided)
            executor: Optional worker pool; created from settings if not provided
            sampler: Optional sampler (default ScenarioSampler)
        """
        self.settings = settings or EngineSettings.from_config()
        self.sampler = sampler or ScenarioSampler()
        self._executor = executor
        self._owns_executor = executor is None

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            sim = self.settings.simulation
            if sim.executor == "process":
                self._executor = ProcessPoolExecutor(max_workers=sim.max_workers)
            else:
                self._executor = ThreadPoolExecutor(
                    max_workers=sim.max_workers,
                    thread_name_prefix="oracle-universe",
                )
            logger.info(f"Started {sim.executor} pool with {sim.max_workers} workers")
        return self._executor

    def close(self):
        """Shut down the worker pool if this pipeline created it."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def run(
        self,
        query: ClinicalQuery,
        candidates: Sequence[CandidateTreatment],
        model: UncertaintyModel,
        seed: Optional[int] = None,
        shifts: Optional[dict[str, float]] = None,
        acceptable: Optional[AcceptableOutcome] = None,
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
    ) -> list[RankedCandidate]:
        """
        Simulate every candidate over the same sampled universes and rank them.

        Args:
            query: Clinical query
            candidates: Candidates to compare
            model: Uncertainty model
            seed: Run seed (None for fresh entropy)
            shifts: Optional factor shifts applied to every universe
            acceptable: Thresholds for optimal_path_probability
            progress_callback: Optional callback for progress updates

        Returns:
            Candidates ranked best first

        Raises:
            InvalidCandidate, InvalidModel, InvalidHorizon: Before any work starts
        """
        def report_progress(stage: ProgressStage, message: str, percent: int, **detail):
            if progress_callback:
                progress_callback(ProgressUpdate(
                    stage=stage,
                    message=message,
                    percent=percent,
                    detail=detail,
                ))

        validate_candidates(candidates)
        validate_uncertainty_model(model, shifts)
        validate_horizon(model.time_horizon)

        acceptable = acceptable or self.settings.acceptable_outcome
        sim = self.settings.simulation
        candidates = list(candidates)

        report_progress(
            ProgressStage.SAMPLING,
            f"Sampling {model.universe_count} universes...",
            10,
            universe_count=model.universe_count,
        )
        universes = self.sampler.sample(query, model, seed=seed, shifts=shifts)

        chunks = _chunks(universes, sim.chunk_size)
        loop = asyncio.get_running_loop()
        completed = 0

        async def evaluate_chunk(chunk: list[Universe]) -> dict[str, list[Universe]]:
            nonlocal completed
            result = await loop.run_in_executor(
                self.executor,
                evaluate_batch,
                chunk,
                candidates,
                model.time_horizon,
            )
            completed += 1
            report_progress(
                ProgressStage.EVALUATING,
                f"Evaluated chunk {completed}/{len(chunks)}",
                15 + int(65 * completed / len(chunks)),
                chunks_done=completed,
                total_chunks=len(chunks),
            )
            return result

        results = await asyncio.gather(*(evaluate_chunk(chunk) for chunk in chunks))

        per_candidate: dict[str, list[Universe]] = {c.name: [] for c in candidates}
        for batch in results:
            for name, evaluated in batch.items():
                per_candidate[name].extend(evaluated)

        report_progress(ProgressStage.AGGREGATING, "Aggregating outcomes...", 85)
        aggregates = [
            (
                candidate,
                aggregate(
                    per_candidate[candidate.name],
                    acceptable=acceptable,
                    percentiles=sim.percentiles,
                    convergence_tolerance=sim.convergence_tolerance,
                ),
            )
            for candidate in candidates
        ]

        for candidate, agg in aggregates:
            if not agg.convergence.converged:
                logger.debug(
                    f"{candidate.name}: survival CI half-width "
                    f"{agg.convergence.relative_half_width:.3f} above tolerance"
                )

        report_progress(ProgressStage.SCORING, "Scoring candidates...", 95)
        return rank_candidates(aggregates)
