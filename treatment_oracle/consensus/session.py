"""
Consensus session: an explicit state machine over reviewer positions.

    collecting --reconcile--> reconciling --finalize--> finalized

Positions are only accepted while collecting. Reconciling computes the
plurality and surfaces every split as a Discrepancy with each side's
reasoning kept verbatim; nothing is resolved automatically. Once
finalized, the session is frozen.
"""

import logging
import threading
import uuid
from typing import Optional

from treatment_oracle.errors import (
    InvalidSessionState,
    NoPositionsSubmitted,
    SessionFinalized,
)
from treatment_oracle.models.consensus import (
    ConsensusResult,
    Discrepancy,
    DiscrepancyPosition,
    FinalConsensus,
    ReviewerPosition,
)
from treatment_oracle.models.enums import SessionState


logger = logging.getLogger(__name__)


class ConsensusSession:
    """
    One multidisciplinary review of a recommendation.

    Every public method takes the session lock, so concurrent reviewers
    are serialized.
    """

    def __init__(self, recommendation_id: str, session_id: Optional[str] = None):
        self.session_id = session_id or f"consensus_{uuid.uuid4().hex[:12]}"
        self.recommendation_id = recommendation_id
        self.state = SessionState.COLLECTING
        # Insertion order is submission order; a resubmission keeps its slot
        self._positions: dict[str, ReviewerPosition] = {}
        self._plurality: Optional[str] = None
        self._agreement_level = 0.0
        self._discrepancies: list[Discrepancy] = []
        self._final: Optional[FinalConsensus] = None
        self._lock = threading.Lock()

    def _require(self, *allowed: SessionState):
        if self.state == SessionState.FINALIZED:
            raise SessionFinalized(
                f"Session {self.session_id} is finalized",
                details={"session_id": self.session_id},
            )
        if self.state not in allowed:
            raise InvalidSessionState(
                f"Session {self.session_id} is {self.state.value}",
                details={
                    "session_id": self.session_id,
                    "state": self.state.value,
                    "allowed": [s.value for s in allowed],
                },
            )

    def submit(self, position: ReviewerPosition) -> ConsensusResult:
        """Add or replace a reviewer's position."""
        with self._lock:
            self._require(SessionState.COLLECTING)
            if position.reviewer_id in self._positions:
                logger.info(f"{self.session_id}: {position.reviewer_id} replaced their position")
            self._positions[position.reviewer_id] = position
            return self._snapshot()

    def reconcile(self) -> ConsensusResult:
        """
        Compute the plurality, agreement level and discrepancies.

        Plurality ties go to the higher summed confidence, then to the
        recommendation submitted first.

        Raises:
            NoPositionsSubmitted: If nobody has submitted yet
        """
        with self._lock:
            self._require(SessionState.COLLECTING)
            if not self._positions:
                raise NoPositionsSubmitted(
                    f"Session {self.session_id} has no positions",
                    details={"session_id": self.session_id},
                )

            positions = list(self._positions.values())
            groups: dict[str, list[ReviewerPosition]] = {}
            for position in positions:
                groups.setdefault(position.recommendation, []).append(position)

            order = list(groups)
            plurality = min(
                order,
                key=lambda rec: (
                    -len(groups[rec]),
                    -sum(p.confidence_level for p in groups[rec]),
                    order.index(rec),
                ),
            )

            self._plurality = plurality
            self._agreement_level = 100.0 * len(groups[plurality]) / len(positions)
            self._discrepancies = [
                Discrepancy(
                    issue=f"{plurality} vs {rec}",
                    positions=[
                        DiscrepancyPosition(
                            reviewer_id=p.reviewer_id,
                            specialty=p.specialty,
                            position=p.recommendation,
                            reasoning=p.reasoning,
                        )
                        for p in groups[plurality] + groups[rec]
                    ],
                )
                for rec in order
                if rec != plurality
            ]
            self.state = SessionState.RECONCILING

            logger.info(
                f"{self.session_id}: plurality {plurality} at "
                f"{self._agreement_level:.1f}% with {len(self._discrepancies)} discrepancies"
            )
            return self._snapshot()

    def annotate(self, index: int, resolution_path: str) -> ConsensusResult:
        """Record how the caller intends to resolve one discrepancy."""
        with self._lock:
            self._require(SessionState.RECONCILING)
            if not 0 <= index < len(self._discrepancies):
                raise IndexError(f"No discrepancy at index {index}")
            self._discrepancies[index] = self._discrepancies[index].model_copy(
                update={"resolution_path": resolution_path}
            )
            return self._snapshot()

    def finalize(
        self,
        resolution: Optional[str] = None,
        compromises: Optional[list[str]] = None,
    ) -> ConsensusResult:
        """
        Freeze the session with the plurality or an explicit override.

        Args:
            resolution: Recommendation to endorse instead of the plurality
            compromises: Free-text compromises agreed by the panel
        """
        with self._lock:
            self._require(SessionState.RECONCILING)
            if not self._positions:
                raise NoPositionsSubmitted(f"Session {self.session_id} has no positions")

            endorsed = resolution if resolution is not None else self._plurality
            positions = list(self._positions.values())
            agreeing = [p for p in positions if p.recommendation == endorsed]

            self._final = FinalConsensus(
                recommendation=endorsed,
                support_level=len(agreeing) / len(positions),
                dissenting=[p.reviewer_id for p in positions if p.recommendation != endorsed],
                compromises=list(compromises or []),
                overridden=endorsed != self._plurality,
            )
            self.state = SessionState.FINALIZED

            logger.info(
                f"{self.session_id}: finalized on {endorsed} "
                f"(support {self._final.support_level:.2f})"
            )
            return self._snapshot()

    def snapshot(self) -> ConsensusResult:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> ConsensusResult:
        return ConsensusResult(
            session_id=self.session_id,
            recommendation_id=self.recommendation_id,
            state=self.state,
            positions=list(self._positions.values()),
            plurality=self._plurality,
            agreement_level=self._agreement_level,
            major_discrepancies=list(self._discrepancies),
            final_consensus=self._final,
        )
