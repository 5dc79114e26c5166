"""
Treatment Oracle - Enumerations

Centralized enum definitions shared by the simulation, scoring and
consensus layers.
"""

from enum import Enum


class QueryType(str, Enum):
    """Kind of decision the oncologist is asking the oracle about."""

    TREATMENT_SELECTION = "treatment_selection"
    DRUG_COMBINATION = "drug_combination"
    TIMING_OPTIMIZATION = "timing_optimization"
    RISK_ASSESSMENT = "risk_assessment"
    EMERGENCY_DECISION = "emergency_decision"


class DiseaseStatus(str, Enum):
    """Disease status at a single simulated month."""

    RESPONDING = "Responding"
    STABLE = "Stable"
    PROGRESSIVE = "Progressive"


class FactorRole(str, Enum):
    """How an uncertain factor acts on a simulated trajectory."""

    EFFICACY = "efficacy"  # Scales the benefit drive
    TOXICITY = "toxicity"  # Scales side-effect probabilities
    PROGRESSION = "progression"  # Scales the progression hazard
    TOLERANCE = "tolerance"  # Patient-side buffering of toxicity
    GENERAL = "general"  # Scales trajectory noise only


class SessionState(str, Enum):
    """Lifecycle state of a consensus session."""

    COLLECTING = "collecting"  # Accepting reviewer positions
    RECONCILING = "reconciling"  # Agreement computed, discrepancies open
    FINALIZED = "finalized"  # Frozen


class JobStatus(str, Enum):
    """Status of a background simulation job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
