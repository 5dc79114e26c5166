"""Tests for data models and the error hierarchy."""

import pytest
from pydantic import ValidationError

from treatment_oracle.errors import InvalidModel, OracleError, SessionNotFound, SimulationTimeout
from treatment_oracle.models import (
    BenefitFactor,
    CandidateTreatment,
    ClinicalContext,
    ClinicalQuery,
    ConsensusResult,
    FactorRole,
    PatientFactors,
    ReviewerPosition,
    RiskFactor,
    SessionState,
    UncertaintyModel,
)


class TestClinicalQuery:
    """Tests for ClinicalQuery."""

    def test_defaults(self):
        """Query id and type are filled in."""
        query = ClinicalQuery(
            clinical_context=ClinicalContext(cancer_type="Lung Cancer"),
            patient_factors=PatientFactors(age=70),
        )
        assert query.query_id.startswith("query_")
        assert query.query_type == "treatment_selection"
        assert query.clinical_context.stage == "II"

    def test_frozen(self, sample_query):
        """A submitted query cannot be changed."""
        with pytest.raises(ValidationError):
            sample_query.patient_id = "someone_else"

    def test_performance_status_bounds(self):
        with pytest.raises(ValidationError):
            PatientFactors(age=60, performance_status=5)

    def test_urgency_bounds(self):
        with pytest.raises(ValidationError):
            ClinicalContext(cancer_type="Colon Cancer", urgency=101)


class TestFactors:
    """Tests for risk and benefit factors."""

    def test_probability_bounds(self):
        with pytest.raises(ValidationError):
            RiskFactor(name="Nausea", probability=1.2, severity=0.3)

    def test_certainty_bounds(self):
        with pytest.raises(ValidationError):
            BenefitFactor(name="Response", magnitude=0.5, certainty=-0.1)

    def test_mean_certainty(self, strong_candidate):
        assert strong_candidate.mean_certainty == pytest.approx(0.85)

    def test_mean_certainty_without_benefits(self):
        assert CandidateTreatment(name="Nothing").mean_certainty is None


class TestUncertaintyModel:
    """Tests for factor role resolution."""

    @pytest.mark.parametrize("factor,role", [
        ("Drug efficacy", FactorRole.EFFICACY),
        ("Toxicity severity", FactorRole.TOXICITY),
        ("Disease progression", FactorRole.PROGRESSION),
        ("Patient metabolism", FactorRole.TOLERANCE),
        ("Immune response", FactorRole.EFFICACY),
        ("Weather", FactorRole.GENERAL),
    ])
    def test_keyword_roles(self, factor, role):
        """Roles are inferred from the factor name."""
        assert UncertaintyModel().role_of(factor) == role

    def test_explicit_role_wins(self):
        model = UncertaintyModel(factor_roles={"Drug efficacy": FactorRole.TOXICITY})
        assert model.role_of("Drug efficacy") == FactorRole.TOXICITY

    def test_levels_not_validated_on_construction(self):
        """Out-of-range levels are left for the sampler to reject."""
        model = UncertaintyModel(uncertainty_levels={"Drug efficacy": 1.5})
        assert model.uncertainty_levels["Drug efficacy"] == 1.5


class TestConsensusModels:
    """Tests for consensus records."""

    def test_agreement_fraction(self):
        result = ConsensusResult(
            session_id="s",
            recommendation_id="r",
            state=SessionState.RECONCILING,
            agreement_level=50.0,
        )
        assert result.agreement_fraction == 0.5
        assert result.state == "reconciling"

    def test_position_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ReviewerPosition(reviewer_id="r1", recommendation="A", confidence_level=120)


class TestErrors:
    """Tests for the error hierarchy."""

    def test_to_dict(self):
        error = InvalidModel("bad level", details={"factor": "x"})
        assert error.to_dict() == {
            "error": "bad level",
            "status_code": 422,
            "details": {"factor": "x"},
            "error_type": "InvalidModel",
        }

    def test_status_codes(self):
        assert SessionNotFound("x").status_code == 404
        assert SimulationTimeout("x").status_code == 504

    def test_override_status(self):
        assert OracleError("x", status_code=418).status_code == 418

    def test_all_errors_share_base(self):
        assert isinstance(SimulationTimeout("x"), OracleError)
