"""API schema modules."""

from api.schemas.consensus import (
    FinalizeRequest,
    OpenSessionRequest,
    OpenSessionResponse,
    ResolutionRequest,
)
from api.schemas.simulation import (
    SimulationRequest,
    SimulationStarted,
    SimulationStatus,
)

__all__ = [
    "FinalizeRequest",
    "OpenSessionRequest",
    "OpenSessionResponse",
    "ResolutionRequest",
    "SimulationRequest",
    "SimulationStarted",
    "SimulationStatus",
]
