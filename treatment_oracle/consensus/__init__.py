"""
Consensus module.

Merges independent reviewer positions into one ConsensusResult.
"""

from treatment_oracle.consensus.builder import ConsensusBuilder
from treatment_oracle.consensus.session import ConsensusSession

__all__ = ["ConsensusBuilder", "ConsensusSession"]
