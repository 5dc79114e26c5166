"""
Consensus Builder: registry of consensus sessions.
"""

import logging
import threading
from collections import deque
from typing import Optional, Union

from treatment_oracle.consensus.session import ConsensusSession
from treatment_oracle.errors import SessionNotFound
from treatment_oracle.models.consensus import ConsensusResult, ReviewerPosition
from treatment_oracle.models.recommendation import Recommendation


logger = logging.getLogger(__name__)


class ConsensusBuilder:
    """
    Holds open and finalized sessions in memory, keyed by session id.

    Finalized sessions stay readable through get() until more than
    max_finalized sessions have been finalized; the oldest are then dropped.
    Open sessions are never dropped.
    """

    def __init__(self, max_finalized: Optional[int] = None):
        self.max_finalized = max_finalized
        self._sessions: dict[str, ConsensusSession] = {}
        self._finalized: deque[str] = deque()
        self._lock = threading.Lock()

    def open_session(self, recommendation: Union[Recommendation, str]) -> str:
        """
        Open a session for a recommendation.

        Args:
            recommendation: The Recommendation, or its ID

        Returns:
            New session ID
        """
        recommendation_id = (
            recommendation.recommendation_id
            if isinstance(recommendation, Recommendation)
            else recommendation
        )
        session = ConsensusSession(recommendation_id)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Opened consensus session {session.session_id} for {recommendation_id}")
        return session.session_id

    def _session(self, session_id: str) -> ConsensusSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(
                f"Consensus session not found: {session_id}",
                details={"session_id": session_id},
            )
        return session

    def submit_position(self, session_id: str, position: ReviewerPosition) -> ConsensusResult:
        return self._session(session_id).submit(position)

    def reconcile(self, session_id: str) -> ConsensusResult:
        return self._session(session_id).reconcile()

    def annotate_discrepancy(
        self, session_id: str, index: int, resolution_path: str
    ) -> ConsensusResult:
        return self._session(session_id).annotate(index, resolution_path)

    def finalize(
        self,
        session_id: str,
        resolution: Optional[str] = None,
        compromises: Optional[list[str]] = None,
    ) -> ConsensusResult:
        result = self._session(session_id).finalize(resolution, compromises)
        with self._lock:
            self._finalized.append(session_id)
            self._evict_finalized()
        return result

    def _evict_finalized(self):
        if self.max_finalized is None:
            return
        while len(self._finalized) > self.max_finalized:
            dropped = self._finalized.popleft()
            self._sessions.pop(dropped, None)
            logger.debug(f"Dropped finalized consensus session {dropped}")

    def get(self, session_id: str) -> ConsensusResult:
        return self._session(session_id).snapshot()
