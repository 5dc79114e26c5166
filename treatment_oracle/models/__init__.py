"""Data models for the treatment oracle."""

from treatment_oracle.models.clinical import (
    BenefitFactor,
    CandidateTreatment,
    ClinicalContext,
    ClinicalQuery,
    PatientFactors,
    RiskFactor,
)
from treatment_oracle.models.consensus import (
    ConsensusResult,
    Discrepancy,
    DiscrepancyPosition,
    FinalConsensus,
    ReviewerPosition,
)
from treatment_oracle.models.enums import (
    DiseaseStatus,
    FactorRole,
    JobStatus,
    QueryType,
    SessionState,
)
from treatment_oracle.models.progress import (
    ProgressCallback,
    ProgressStage,
    ProgressUpdate,
)
from treatment_oracle.models.recommendation import (
    AlternativeScenario,
    ConfidenceMetrics,
    DecisionConfidence,
    ExpectedOutcome,
    RankedCandidate,
    Recommendation,
    RiskBenefitScore,
    SensitivityFactor,
    SensitivityReport,
    UncertaintyFactor,
)
from treatment_oracle.models.simulation import (
    AcceptableOutcome,
    AggregateOutcome,
    ConvergenceDiagnostic,
    FinalOutcome,
    OutcomeStatistics,
    PatientBaseline,
    TimeStep,
    UncertaintyModel,
    Universe,
)

__all__ = [
    "AcceptableOutcome",
    "AggregateOutcome",
    "AlternativeScenario",
    "BenefitFactor",
    "CandidateTreatment",
    "ClinicalContext",
    "ClinicalQuery",
    "ConfidenceMetrics",
    "ConsensusResult",
    "ConvergenceDiagnostic",
    "DecisionConfidence",
    "Discrepancy",
    "DiscrepancyPosition",
    "DiseaseStatus",
    "ExpectedOutcome",
    "FactorRole",
    "FinalConsensus",
    "FinalOutcome",
    "JobStatus",
    "OutcomeStatistics",
    "PatientBaseline",
    "PatientFactors",
    "ProgressCallback",
    "ProgressStage",
    "ProgressUpdate",
    "QueryType",
    "RankedCandidate",
    "Recommendation",
    "ReviewerPosition",
    "RiskBenefitScore",
    "RiskFactor",
    "SensitivityFactor",
    "SensitivityReport",
    "SessionState",
    "TimeStep",
    "UncertaintyFactor",
    "UncertaintyModel",
    "Universe",
]
