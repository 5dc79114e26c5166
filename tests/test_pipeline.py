"""Tests for the simulation pipeline."""

from unittest.mock import MagicMock

import pytest

from treatment_oracle.config import EngineSettings, SimulationSettings
from treatment_oracle.errors import InvalidCandidate, InvalidHorizon, InvalidModel
from treatment_oracle.models import ProgressStage, UncertaintyModel
from treatment_oracle.pipeline import SimulationPipeline, _chunks, validate_candidates
from treatment_oracle.simulation.sampler import ScenarioSampler


@pytest.fixture
def pipeline(engine_settings):
    pipeline = SimulationPipeline(engine_settings)
    yield pipeline
    pipeline.close()


class TestValidateCandidates:
    """Candidate list checks."""

    def test_empty(self):
        with pytest.raises(InvalidCandidate):
            validate_candidates([])

    def test_duplicates(self, strong_candidate):
        with pytest.raises(InvalidCandidate) as exc_info:
            validate_candidates([strong_candidate, strong_candidate])
        assert exc_info.value.details["duplicates"] == [strong_candidate.name]

    def test_unique(self, strong_candidate, weak_candidate):
        validate_candidates([strong_candidate, weak_candidate])


class TestChunks:
    def test_chunk_sizes(self):
        assert [len(c) for c in _chunks(list(range(60)), 25)] == [25, 25, 10]


class TestPipelineRun:
    """Tests for SimulationPipeline.run."""

    @pytest.mark.asyncio
    async def test_ranks_every_candidate(self, pipeline, sample_query, strong_candidate, weak_candidate, uncertainty_model):
        ranked = await pipeline.run(
            sample_query, [weak_candidate, strong_candidate], uncertainty_model, seed=11
        )
        assert {r.name for r in ranked} == {strong_candidate.name, weak_candidate.name}
        assert all(r.aggregate.universe_count == uncertainty_model.universe_count for r in ranked)
        assert ranked[0].suitability_score >= ranked[1].suitability_score

    @pytest.mark.asyncio
    async def test_common_random_numbers(self, pipeline, sample_query, strong_candidate, uncertainty_model):
        """Identical candidates see identical universes, so their aggregates match."""
        twin = strong_candidate.model_copy(update={"name": "Twin"})
        ranked = await pipeline.run(sample_query, [strong_candidate, twin], uncertainty_model, seed=5)
        first, second = (r.aggregate.model_dump(exclude={"treatment"}) for r in ranked)
        assert first == second
        # Full tie falls through to the name
        assert [r.name for r in ranked] == sorted([strong_candidate.name, "Twin"])

    @pytest.mark.asyncio
    async def test_progress_reporting(self, pipeline, sample_query, strong_candidate, uncertainty_model):
        updates = []
        await pipeline.run(
            sample_query, [strong_candidate], uncertainty_model, seed=1, progress_callback=updates.append
        )
        stages = [u.stage for u in updates]
        assert stages[0] == ProgressStage.SAMPLING
        # 60 universes in chunks of 25
        assert stages.count(ProgressStage.EVALUATING) == 3
        assert stages[-2:] == [ProgressStage.AGGREGATING, ProgressStage.SCORING]
        assert all(0 <= u.percent <= 100 for u in updates)

    @pytest.mark.asyncio
    async def test_shifts_reach_sampler(self, engine_settings, sample_query, strong_candidate, uncertainty_model):
        sampler = MagicMock(wraps=ScenarioSampler())
        pipeline = SimulationPipeline(engine_settings, sampler=sampler)
        try:
            await pipeline.run(
                sample_query, [strong_candidate], uncertainty_model, seed=1, shifts={"Drug efficacy": 0.2}
            )
        finally:
            pipeline.close()
        assert sampler.sample.call_args.kwargs["shifts"] == {"Drug efficacy": 0.2}

    @pytest.mark.asyncio
    async def test_process_pool_matches_thread_pool(self, sample_query, strong_candidate, weak_candidate, uncertainty_model):
        results = {}
        for executor in ("thread", "process"):
            settings = EngineSettings(
                simulation=SimulationSettings(executor=executor, max_workers=2, chunk_size=25)
            )
            pipeline = SimulationPipeline(settings)
            try:
                ranked = await pipeline.run(
                    sample_query, [weak_candidate, strong_candidate], uncertainty_model, seed=19
                )
            finally:
                pipeline.close()
            results[executor] = [
                (r.name, r.suitability_score, r.aggregate.model_dump()) for r in ranked
            ]
        assert results["process"] == results["thread"]


class TestEagerValidation:
    """Errors are raised before any sampling."""

    @pytest.fixture
    def spy_pipeline(self, engine_settings):
        pipeline = SimulationPipeline(engine_settings, sampler=MagicMock())
        yield pipeline
        pipeline.close()

    @pytest.mark.asyncio
    async def test_invalid_model(self, spy_pipeline, sample_query, strong_candidate):
        model = UncertaintyModel(uncertainty_levels={"Drug efficacy": 2.0})
        with pytest.raises(InvalidModel):
            await spy_pipeline.run(sample_query, [strong_candidate], model)
        spy_pipeline.sampler.sample.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_horizon(self, spy_pipeline, sample_query, strong_candidate):
        with pytest.raises(InvalidHorizon):
            await spy_pipeline.run(sample_query, [strong_candidate], UncertaintyModel(time_horizon=0))
        spy_pipeline.sampler.sample.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_candidates(self, spy_pipeline, sample_query):
        with pytest.raises(InvalidCandidate):
            await spy_pipeline.run(sample_query, [], UncertaintyModel())
        spy_pipeline.sampler.sample.assert_not_called()
