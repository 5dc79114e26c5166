"""
Pytest configuration and shared fixtures for the test suite.
"""

import pytest

from treatment_oracle.config import EngineSettings, SensitivitySettings, SimulationSettings
from treatment_oracle.models import (
    AggregateOutcome,
    BenefitFactor,
    CandidateTreatment,
    ClinicalContext,
    ClinicalQuery,
    ConvergenceDiagnostic,
    FinalOutcome,
    OutcomeStatistics,
    PatientBaseline,
    PatientFactors,
    RiskFactor,
    TimeStep,
    UncertaintyModel,
    Universe,
)


# ============================================================================
# Scripted Draw Sources
# ============================================================================

class ScriptedDrawSource:
    """
    DrawSource that replays fixed values and records every request.

    Uniform and normal values are served from separate cycles.
    """

    def __init__(self, uniforms=(0.99,), normals=(0.0,)):
        self._uniforms = list(uniforms)
        self._normals = list(normals)
        self._u = 0
        self._n = 0
        self.calls = []

    def uniform(self, size):
        self.calls.append(("uniform", size))
        values = [self._uniforms[(self._u + i) % len(self._uniforms)] for i in range(size)]
        self._u += size
        return values

    def normal(self, size):
        self.calls.append(("normal", size))
        values = [self._normals[(self._n + i) % len(self._normals)] for i in range(size)]
        self._n += size
        return values


class ExplodingDrawSource:
    """DrawSource that fails if anything is drawn."""

    def uniform(self, size):
        raise AssertionError("uniform() should not be called")

    def normal(self, size):
        raise AssertionError("normal() should not be called")


@pytest.fixture
def scripted_draws():
    """Factory for scripted draw sources."""
    return ScriptedDrawSource


@pytest.fixture
def exploding_draws():
    return ExplodingDrawSource()


# ============================================================================
# Clinical Fixtures
# ============================================================================

@pytest.fixture
def sample_query():
    """A stage II breast cancer query."""
    return ClinicalQuery(
        query_id="query_test",
        patient_id="patient_1",
        oncologist_id="onc_1",
        clinical_context=ClinicalContext(
            cancer_type="Breast Cancer",
            stage="II",
            prior_treatments=["Surgery"],
            comorbidities=["Hypertension"],
            genetic_profile=["HER2+"],
            current_symptoms=["Fatigue"],
            urgency=40,
        ),
        patient_factors=PatientFactors(
            age=58,
            performance_status=1,
            quality_of_life_goals=["Maintain work"],
        ),
    )


@pytest.fixture
def strong_candidate():
    """High-benefit, moderate-risk treatment."""
    return CandidateTreatment(
        name="Trastuzumab + Chemotherapy",
        reasoning="Targeted therapy for HER2+ disease",
        risk_factors=[
            RiskFactor(name="Cardiotoxicity", probability=0.1, severity=0.6, mitigation="Cardiac monitoring"),
            RiskFactor(name="Neutropenia", probability=0.3, severity=0.4, mitigation="Growth factor support"),
        ],
        benefit_factors=[
            BenefitFactor(name="Tumor response", magnitude=0.9, timeframe="3-6 months", certainty=0.9),
            BenefitFactor(name="Survival", magnitude=0.8, timeframe="12 months", certainty=0.8),
        ],
    )


@pytest.fixture
def weak_candidate():
    """Low-benefit treatment."""
    return CandidateTreatment(
        name="Observation",
        reasoning="Watchful waiting",
        risk_factors=[
            RiskFactor(name="Disease progression", probability=0.4, severity=0.7),
        ],
        benefit_factors=[
            BenefitFactor(name="Avoided toxicity", magnitude=0.2, certainty=0.5),
        ],
    )


@pytest.fixture
def uncertainty_model():
    """Small model that keeps tests fast."""
    return UncertaintyModel(
        uncertainty_levels={
            "Drug efficacy": 0.3,
            "Toxicity severity": 0.2,
        },
        universe_count=60,
        time_horizon=6,
        variability_factors=["Genetic variations"],
    )


@pytest.fixture
def baseline():
    return PatientBaseline(
        response=40.0,
        quality_of_life=70.0,
        progression_hazard=0.03,
        toxicity_susceptibility=1.1,
    )


# ============================================================================
# Universe / Aggregate Factories
# ============================================================================

@pytest.fixture
def make_universe(baseline):
    """Factory for evaluated universes with a given outcome."""
    def _create(
        overall_survival: float = 80.0,
        treatment: str = "A",
        index: int = 0,
        final_status: str = "Stable",
        side_effects: tuple = (),
        progression_free_survival: float = 6.0,
        treatment_burden: float = 10.0,
    ):
        return Universe(
            universe_id=f"universe-{index}",
            index=index,
            seed=index,
            baseline=baseline,
            treatment_path=treatment,
            timeline=[
                TimeStep(
                    time_point=1,
                    disease_status=final_status,
                    quality_of_life=70.0,
                    treatment_response=40.0,
                    side_effects=list(side_effects),
                ),
            ],
            final_outcome=FinalOutcome(
                overall_survival=overall_survival,
                progression_free_survival=progression_free_survival,
                quality_adjusted_life_years=0.5,
                treatment_burden=treatment_burden,
                patient_satisfaction=60.0,
            ),
        )
    return _create


def _stats(mean: float) -> OutcomeStatistics:
    return OutcomeStatistics(mean=mean, std=0.0, min=mean, max=mean)


@pytest.fixture
def make_aggregate():
    """Factory for aggregates with controllable robustness and probability."""
    def _create(
        treatment: str = "A",
        robustness: float = 1.0,
        optimal_path_probability: float = 0.5,
        survival: float = 75.0,
    ):
        return AggregateOutcome(
            treatment=treatment,
            universe_count=100,
            overall_survival=_stats(survival),
            progression_free_survival=_stats(6.0),
            quality_adjusted_life_years=_stats(0.5),
            treatment_burden=_stats(20.0),
            patient_satisfaction=_stats(60.0),
            optimal_path_probability=optimal_path_probability,
            robustness_score=robustness,
            tail_risk=survival - 10.0,
            response_rate=0.4,
            adverse_event_rate=0.3,
            convergence=ConvergenceDiagnostic(
                standard_error=0.5,
                relative_half_width=0.01,
                converged=True,
            ),
        )
    return _create


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture
def engine_settings():
    """Settings with a small pool and cheap sensitivity runs."""
    return EngineSettings(
        simulation=SimulationSettings(max_workers=2, chunk_size=25),
        sensitivity=SensitivitySettings(max_universes=40, bisection_steps=4),
    )
