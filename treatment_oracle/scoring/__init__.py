"""Risk-benefit scoring and ranking of candidate treatments."""

from treatment_oracle.scoring.confidence import decision_confidence
from treatment_oracle.scoring.scorer import (
    build_recommendation,
    pros_and_cons,
    rank_candidates,
    score,
)

__all__ = [
    "build_recommendation",
    "decision_confidence",
    "pros_and_cons",
    "rank_candidates",
    "score",
]
