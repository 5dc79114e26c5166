"""Tests for the decision confidence summary."""

import pytest

from treatment_oracle.consensus import ConsensusBuilder
from treatment_oracle.models import ReviewerPosition, SensitivityFactor, SensitivityReport
from treatment_oracle.scoring import build_recommendation, decision_confidence, rank_candidates


@pytest.fixture
def recommendation(strong_candidate, weak_candidate, make_aggregate):
    ranked = rank_candidates([
        (strong_candidate, make_aggregate(strong_candidate.name)),
        (weak_candidate, make_aggregate(weak_candidate.name)),
    ])
    return build_recommendation("query_1", ranked)


def _report(recommendation, factors, robust=True, critical=()):
    return SensitivityReport(
        recommendation_id=recommendation.recommendation_id,
        primary=recommendation.primary.name,
        universe_count=50,
        factors=factors,
        robust_decision=robust,
        critical_assumptions=list(critical),
    )


def _factor(name, threshold=None, within=False, impact=0.5, level=0.3):
    return SensitivityFactor(
        factor=name,
        role="efficacy",
        uncertainty_level=level,
        impact_magnitude=impact,
        raw_delta=0.1,
        critical_threshold=threshold,
        within_declared_range=within,
    )


class TestMetrics:
    """Tests for ConfidenceMetrics."""

    def test_from_primary(self, recommendation):
        confidence = decision_confidence(recommendation, _report(recommendation, []))
        metrics = confidence.confidence_metrics
        primary = recommendation.primary

        assert confidence.recommendation_id == recommendation.recommendation_id
        assert confidence.confidence_id.startswith("confidence_")
        assert metrics.evidence_quality == pytest.approx(primary.evidence_strength)
        assert metrics.outcome_prediction == pytest.approx(primary.confidence_level)
        # relative_half_width of 0.01
        assert metrics.data_completeness == pytest.approx(99.0)
        # Both declared risks carry a mitigation
        assert metrics.risk_assessment == pytest.approx(100.0)
        assert metrics.consensus_level is None

    def test_unmitigated_risks(self, weak_candidate, make_aggregate):
        ranked = rank_candidates([(weak_candidate, make_aggregate(weak_candidate.name))])
        recommendation = build_recommendation("q", ranked)
        metrics = decision_confidence(recommendation, _report(recommendation, [])).confidence_metrics
        assert metrics.risk_assessment == 0.0

    def test_consensus_counts_once_reconciled(self, recommendation):
        builder = ConsensusBuilder()
        session_id = builder.open_session(recommendation)
        for reviewer, choice in [("r1", "A"), ("r2", "A"), ("r3", "B"), ("r4", "A")]:
            builder.submit_position(session_id, ReviewerPosition(
                reviewer_id=reviewer, recommendation=choice, confidence_level=70.0,
            ))
        report = _report(recommendation, [])

        collecting = decision_confidence(recommendation, report, builder.get(session_id))
        assert collecting.confidence_metrics.consensus_level is None

        builder.reconcile(session_id)
        reconciled = decision_confidence(recommendation, report, builder.get(session_id))
        assert reconciled.confidence_metrics.consensus_level == pytest.approx(75.0)


class TestUncertaintyFactors:
    """Tests for the per-factor uncertainty summary."""

    def test_one_entry_per_factor(self, recommendation):
        factors = [
            _factor("Drug efficacy", threshold=0.25, within=True, impact=0.8, level=0.4),
            _factor("Toxicity severity", threshold=0.6, impact=0.2, level=0.1),
            _factor("Tolerance", impact=0.0),
        ]
        report = _report(recommendation, factors, robust=False, critical=["Drug efficacy"])
        confidence = decision_confidence(recommendation, report)

        entries = confidence.uncertainty_factors
        assert [e.factor for e in entries] == ["Drug efficacy", "Toxicity severity", "Tolerance"]
        assert entries[0].uncertainty_level == pytest.approx(0.4)
        assert entries[0].impact_on_decision == pytest.approx(80.0)
        assert entries[0].information_needed.startswith("Narrow the uncertainty on Drug efficacy")
        assert "0.25" in entries[0].information_needed
        assert entries[1].information_needed.startswith("Monitor Toxicity severity")
        assert entries[2].information_needed == "None: Tolerance does not change the lead"

    def test_robustness_copied_from_report(self, recommendation):
        report = _report(
            recommendation,
            [_factor("Drug efficacy", threshold=0.0, within=True)],
            robust=False,
            critical=["Drug efficacy"],
        )
        confidence = decision_confidence(recommendation, report)
        assert not confidence.robust_decision
        assert confidence.critical_assumptions == ["Drug efficacy"]

    def test_robust_report(self, recommendation):
        confidence = decision_confidence(recommendation, _report(recommendation, [_factor("Drug efficacy")]))
        assert confidence.robust_decision
        assert confidence.critical_assumptions == []
