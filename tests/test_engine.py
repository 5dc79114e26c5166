"""Tests for the oracle engine facade."""

import asyncio

import pytest

from treatment_oracle.engine import OracleEngine, run_with_deadline
from treatment_oracle.errors import InvalidCandidate, SimulationTimeout
from treatment_oracle.models import ProgressStage, ReviewerPosition, UncertaintyModel


@pytest.fixture
def engine(engine_settings):
    engine = OracleEngine(engine_settings)
    yield engine
    engine.close()


@pytest.fixture
def full_model():
    """1000 universes over a 12 month horizon."""
    return UncertaintyModel(
        uncertainty_levels={
            "Drug efficacy": 0.3,
            "Toxicity severity": 0.2,
            "Disease progression": 0.25,
            "Patient metabolism": 0.15,
        },
        universe_count=1000,
        time_horizon=12,
    )


class TestRunSimulation:
    """Tests for OracleEngine.run_simulation."""

    @pytest.mark.asyncio
    async def test_full_run(self, engine, sample_query, strong_candidate, weak_candidate, full_model):
        """Two candidates, 1000 universes, 12 months."""
        recommendation = await engine.run_simulation(
            sample_query, [weak_candidate, strong_candidate], full_model, seed=2024
        )

        assert recommendation.query_id == sample_query.query_id
        assert recommendation.primary.name == strong_candidate.name
        assert len(recommendation.alternatives) == 1
        for alternative in recommendation.alternatives:
            assert recommendation.primary.suitability_score >= alternative.suitability_score
            assert set(alternative.outcome_comparison) >= {"overall_survival", "treatment_burden"}

        aggregate = recommendation.primary.aggregate
        assert aggregate.universe_count == 1000
        assert 0.0 <= aggregate.optimal_path_probability <= 1.0
        assert 0.0 <= aggregate.robustness_score <= 1.0
        assert 0.0 <= recommendation.expected_outcome.response_rate <= 100.0

    @pytest.mark.asyncio
    async def test_same_seed_identical_recommendation(self, engine, sample_query, strong_candidate, weak_candidate):
        model = UncertaintyModel(
            uncertainty_levels={"Drug efficacy": 0.3, "Toxicity severity": 0.2},
            universe_count=200,
            time_horizon=12,
        )
        exclude = {"recommendation_id", "created_at"}
        first = await engine.run_simulation(sample_query, [strong_candidate, weak_candidate], model, seed=77)
        second = await engine.run_simulation(sample_query, [strong_candidate, weak_candidate], model, seed=77)
        assert first.model_dump_json(exclude=exclude) == second.model_dump_json(exclude=exclude)

    @pytest.mark.asyncio
    async def test_seed_recorded_when_not_given(self, engine, sample_query, strong_candidate, uncertainty_model):
        recommendation = await engine.run_simulation(sample_query, [strong_candidate], uncertainty_model)
        assert isinstance(recommendation.seed, int)

    @pytest.mark.asyncio
    async def test_single_candidate(self, engine, sample_query, strong_candidate, uncertainty_model):
        recommendation = await engine.run_simulation(sample_query, [strong_candidate], uncertainty_model, seed=1)
        assert recommendation.alternatives == []

    @pytest.mark.asyncio
    async def test_progress_stages(self, engine, sample_query, strong_candidate, uncertainty_model):
        updates = []
        await engine.run_simulation(
            sample_query, [strong_candidate], uncertainty_model, seed=1, progress_callback=updates.append
        )
        stages = [u.stage for u in updates]
        assert stages[0] == ProgressStage.INITIALIZING
        assert stages[-1] == ProgressStage.COMPLETE
        for stage in (ProgressStage.SAMPLING, ProgressStage.EVALUATING, ProgressStage.AGGREGATING, ProgressStage.SCORING):
            assert stage in stages

    @pytest.mark.asyncio
    async def test_error_reported(self, engine, sample_query, uncertainty_model):
        updates = []
        with pytest.raises(InvalidCandidate):
            await engine.run_simulation(sample_query, [], uncertainty_model, progress_callback=updates.append)
        assert updates[-1].stage == ProgressStage.ERROR


class TestDeadline:
    """Tests for run_with_deadline."""

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(SimulationTimeout) as exc_info:
            await run_with_deadline(asyncio.sleep(1), 0.01)
        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_result_passed_through(self):
        assert await run_with_deadline(asyncio.sleep(0, result=5), 1) == 5

    @pytest.mark.asyncio
    async def test_simulation_deadline(self, engine, sample_query, strong_candidate, full_model):
        with pytest.raises(SimulationTimeout):
            await run_with_deadline(
                engine.run_simulation(sample_query, [strong_candidate], full_model, seed=1),
                0.001,
            )


class TestConsensusPassthrough:
    """The engine exposes the consensus builder."""

    @pytest.mark.asyncio
    async def test_session_flow(self, engine, sample_query, strong_candidate, uncertainty_model):
        recommendation = await engine.run_simulation(sample_query, [strong_candidate], uncertainty_model, seed=1)
        session_id = engine.open_consensus_session(recommendation)

        engine.submit_position(session_id, ReviewerPosition(reviewer_id="onc", recommendation=strong_candidate.name))
        engine.reconcile(session_id)
        result = engine.finalize(session_id)

        assert result.recommendation_id == recommendation.recommendation_id
        assert result.final_consensus.recommendation == strong_candidate.name
        assert engine.get_consensus(session_id).state == "finalized"

    def test_finalized_cap_from_settings(self, engine_settings):
        engine_settings.consensus.max_finalized_sessions = 3
        engine = OracleEngine(engine_settings)
        try:
            assert engine.consensus.max_finalized == 3
        finally:
            engine.close()


class TestDecisionConfidence:
    """Confidence summary built from a run, its sensitivity report and a session."""

    @pytest.mark.asyncio
    async def test_with_and_without_session(self, engine, sample_query, strong_candidate, weak_candidate, uncertainty_model):
        recommendation = await engine.run_simulation(
            sample_query, [strong_candidate, weak_candidate], uncertainty_model, seed=5
        )
        report = await engine.run_sensitivity(sample_query, recommendation, uncertainty_model)

        confidence = engine.decision_confidence(recommendation, report)
        assert confidence.recommendation_id == recommendation.recommendation_id
        assert confidence.robust_decision == report.robust_decision
        assert [f.factor for f in confidence.uncertainty_factors] == [f.factor for f in report.factors]
        assert confidence.confidence_metrics.consensus_level is None

        session_id = engine.open_consensus_session(recommendation)
        engine.submit_position(session_id, ReviewerPosition(reviewer_id="onc", recommendation=strong_candidate.name))
        engine.reconcile(session_id)
        confidence = engine.decision_confidence(recommendation, report, session_id=session_id)
        assert confidence.confidence_metrics.consensus_level == pytest.approx(100.0)
