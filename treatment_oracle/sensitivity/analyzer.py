"""
Sensitivity Analyzer for stress-testing a recommendation.

Each uncertain factor is perturbed on its own while every other factor is
held fixed, and the full sample -> evaluate -> aggregate -> score pipeline
is re-run for the primary and the best alternative. All re-runs share one
seed, so the only difference between two runs is the perturbation.

Cost is O(factors x universes x (scan points + bisection steps)). Re-runs
use a reduced universe count (sensitivity.max_universes), trading
statistical precision for responsiveness; a warning is logged when a
request is expensive. If the primary does not lead at the reduced count,
the analysis is repeated at the full count.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from treatment_oracle.config import SensitivitySettings
from treatment_oracle.models.clinical import CandidateTreatment, ClinicalQuery
from treatment_oracle.models.progress import ProgressStage, ProgressUpdate
from treatment_oracle.models.recommendation import (
    AlternativeScenario,
    SensitivityFactor,
    SensitivityReport,
)
from treatment_oracle.models.simulation import AcceptableOutcome, UncertaintyModel
from treatment_oracle.pipeline import SimulationPipeline
from treatment_oracle.simulation.evaluator import validate_horizon
from treatment_oracle.simulation.random_source import new_run_seed
from treatment_oracle.simulation.sampler import validate_uncertainty_model


logger = logging.getLogger(__name__)


class SensitivityAnalyzer:
    """
    Measures how much each uncertain factor moves the decision.

    For every factor it reports:
    - impact_magnitude: change in the primary's suitability when the factor
      sits at its declared upper bound, normalized across factors
    - critical_threshold: smallest shift (either direction) at which the
      primary loses the lead, found by a grid scan of the declared range,
      then of the range up to max_shift, refined by bisection
    """

    def __init__(
        self,
        pipeline: SimulationPipeline,
        settings: Optional[SensitivitySettings] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            pipeline: Pipeline used for every re-run
            settings: Sensitivity settings (taken from the pipeline if not provided)
        """
        self.pipeline = pipeline
        self.settings = settings or pipeline.settings.sensitivity

    async def analyze(
        self,
        query: ClinicalQuery,
        primary: CandidateTreatment,
        alternatives: Sequence[CandidateTreatment],
        model: UncertaintyModel,
        seed: Optional[int] = None,
        acceptable: Optional[AcceptableOutcome] = None,
        recommendation_id: str = "",
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
    ) -> SensitivityReport:
        """
        Analyze the primary recommendation against the best alternative.

        Args:
            query: Clinical query the recommendation answers
            primary: Primary candidate
            alternatives: Remaining candidates, best first
            model: Uncertainty model of the original run
            seed: Seed shared by every re-run (fresh if not provided)
            acceptable: Thresholds for optimal_path_probability
            recommendation_id: ID copied into the report
            progress_callback: Optional callback for progress updates

        Returns:
            SensitivityReport with factors sorted by impact
        """
        def report_progress(message: str, percent: int, **detail):
            if progress_callback:
                progress_callback(ProgressUpdate(
                    stage=ProgressStage.SENSITIVITY,
                    message=message,
                    percent=percent,
                    detail=detail,
                ))

        validate_uncertainty_model(model)
        validate_horizon(model.time_horizon)

        reduced = model.model_copy(update={
            "universe_count": min(model.universe_count, self.settings.max_universes),
        })
        seed = seed if seed is not None else new_run_seed()
        contenders = [primary, *alternatives[:1]]
        compared_against = alternatives[0].name if alternatives else None
        factors = sorted(model.uncertainty_levels)

        if not factors:
            return SensitivityReport(
                recommendation_id=recommendation_id,
                primary=primary.name,
                compared_against=compared_against,
                universe_count=reduced.universe_count,
            )

        self._warn_if_expensive(reduced, len(factors), len(contenders))

        baseline_leader, baseline_scores = await self._run(
            query, contenders, reduced, seed, {}, acceptable
        )
        if baseline_leader != primary.name and reduced.universe_count < model.universe_count:
            logger.warning(
                f"At {reduced.universe_count} universes the leader is {baseline_leader}, "
                f"not {primary.name}; repeating at {model.universe_count} universes"
            )
            reduced = model
            self._warn_if_expensive(reduced, len(factors), len(contenders))
            baseline_leader, baseline_scores = await self._run(
                query, contenders, reduced, seed, {}, acceptable
            )

        notes = []
        primary_leads = baseline_leader == primary.name
        if not primary_leads:
            logger.warning(
                f"{baseline_leader} leads {primary.name} without any perturbation "
                f"at {reduced.universe_count} universes"
            )
            notes.append(
                f"{baseline_leader} leads without any perturbation at "
                f"{reduced.universe_count} universes"
            )

        done = 0

        async def analyze_factor(factor: str):
            nonlocal done
            level = float(model.uncertainty_levels[factor])
            upper_leader, upper_scores = await self._run(
                query, contenders, reduced, seed, {factor: level}, acceptable
            )
            raw_delta = abs(upper_scores[primary.name] - baseline_scores[primary.name])
            changed = upper_leader != primary.name

            threshold = None
            if not primary_leads:
                threshold = 0.0
            elif len(contenders) > 1:
                threshold = await self._critical_threshold(
                    query, contenders, reduced, seed, factor, level,
                    primary.name, acceptable, known={level: changed},
                )

            done += 1
            report_progress(
                f"Factor {done}/{len(factors)}: {factor}",
                int(100 * done / len(factors)),
                factor=factor,
                critical_threshold=threshold,
            )
            return factor, level, raw_delta, threshold, changed

        results = await asyncio.gather(*(analyze_factor(f) for f in factors))

        max_delta = max(r[2] for r in results)
        sensitivity_factors = []
        scenarios = []
        for factor, level, raw_delta, threshold, changed in results:
            within = threshold is not None and threshold <= level
            sensitivity_factors.append(SensitivityFactor(
                factor=factor,
                role=model.role_of(factor),
                uncertainty_level=level,
                impact_magnitude=raw_delta / max_delta if max_delta > 0 else 0.0,
                raw_delta=raw_delta,
                critical_threshold=threshold,
                within_declared_range=within,
            ))
            scenarios.append(AlternativeScenario(
                scenario=f"Higher {factor}",
                factor=factor,
                shift=level,
                recommendation_change=changed,
            ))

        sensitivity_factors.sort(key=lambda f: (-f.impact_magnitude, f.factor))
        critical = [f.factor for f in sensitivity_factors if f.within_declared_range]

        logger.info(
            f"Sensitivity for {primary.name}: {len(factors)} factors, "
            f"{len(critical)} critical"
        )

        return SensitivityReport(
            recommendation_id=recommendation_id,
            primary=primary.name,
            compared_against=compared_against,
            baseline_leader=baseline_leader,
            universe_count=reduced.universe_count,
            factors=sensitivity_factors,
            robust_decision=not critical,
            critical_assumptions=critical,
            alternative_scenarios=scenarios,
            notes=notes,
        )

    async def _run(
        self,
        query: ClinicalQuery,
        contenders: list[CandidateTreatment],
        model: UncertaintyModel,
        seed: int,
        shifts: dict[str, float],
        acceptable: Optional[AcceptableOutcome],
    ) -> tuple[str, dict[str, float]]:
        """One pipeline run; returns the leader and each contender's suitability."""
        ranked = await self.pipeline.run(
            query, contenders, model, seed=seed, shifts=shifts, acceptable=acceptable
        )
        return ranked[0].name, {r.name: r.suitability_score for r in ranked}

    def _scan_points(self, level: float) -> list[float]:
        """
        Shift magnitudes tried before bisecting, nearest first.

        The declared range (0, level] comes first, then (level, max_shift].
        """
        n = max(1, self.settings.scan_points)
        max_shift = self.settings.max_shift
        points = []
        if level > 0:
            points += [level * k / n for k in range(1, n)] + [level]
        if max_shift > level:
            span = max_shift - level
            points += [level + span * k / n for k in range(1, n)] + [max_shift]
        return points

    async def _critical_threshold(
        self,
        query: ClinicalQuery,
        contenders: list[CandidateTreatment],
        model: UncertaintyModel,
        seed: int,
        factor: str,
        level: float,
        primary: str,
        acceptable: Optional[AcceptableOutcome],
        known: Optional[dict[float, bool]] = None,
    ) -> Optional[float]:
        """
        Smallest |shift| of one factor at which the primary loses the lead.

        Both directions are searched. Each direction is scanned on a grid,
        declared range first; the first flipping grid point is bisected
        against the last non-flipping one. Runs already made (known maps a
        signed shift to whether it flipped) are not repeated.
        """
        cache = dict(known or {})

        async def flips(shift: float) -> bool:
            if shift not in cache:
                leader, _ = await self._run(
                    query, contenders, model, seed, {factor: shift}, acceptable
                )
                cache[shift] = leader != primary
            return cache[shift]

        best = None
        for direction in (1.0, -1.0):
            bracket = await self._bracket(flips, direction, level)
            if bracket is None:
                continue
            low, high = bracket
            for _ in range(self.settings.bisection_steps):
                mid = (low + high) / 2
                if await flips(direction * mid):
                    high = mid
                else:
                    low = mid
            if best is None or high < best:
                best = high
        return best

    async def _bracket(
        self,
        flips: Callable[[float], Awaitable[bool]],
        direction: float,
        level: float,
    ) -> Optional[tuple[float, float]]:
        """(last non-flipping, first flipping) magnitude on the scan grid."""
        low = 0.0
        for point in self._scan_points(level):
            if await flips(direction * point):
                return low, point
            low = point
        return None

    def _warn_if_expensive(self, model: UncertaintyModel, factor_count: int, contender_count: int):
        scan = 2 * max(1, self.settings.scan_points)
        runs_per_factor = 1 + 2 * (scan + self.settings.bisection_steps)
        months = (
            runs_per_factor
            * factor_count
            * model.universe_count
            * contender_count
            * model.time_horizon
        )
        if months > self.settings.cost_warning_steps:
            logger.warning(
                f"Sensitivity analysis may simulate up to {months:,} universe-months; "
                f"lower sensitivity.max_universes for faster results"
            )
