"""
Exception classes for the treatment oracle.

Every error is a local condition the caller can recover from. Each carries
an HTTP status code so the API layer can render it without a lookup table.
"""


class OracleError(Exception):
    """Base exception for all oracle errors."""
    status_code = 500

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self):
        return {
            "error": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "error_type": self.__class__.__name__,
        }


class InvalidModel(OracleError):
    """Malformed UncertaintyModel"""
    status_code = 422


class InvalidHorizon(OracleError):
    """Non-positive time horizon"""
    status_code = 422


class InvalidCandidate(OracleError):
    """Candidate list is empty or names collide"""
    status_code = 422


class EmptyInput(OracleError):
    """Aggregation or scoring over nothing"""
    status_code = 422


class SessionNotFound(OracleError):
    """Unknown consensus session id"""
    status_code = 404


class SessionFinalized(OracleError):
    """Mutation attempted on a frozen consensus session"""
    status_code = 409


class InvalidSessionState(OracleError):
    """Operation not allowed in the session's current state"""
    status_code = 409


class NoPositionsSubmitted(OracleError):
    """Consensus requested before any reviewer submitted a position"""
    status_code = 409


class SimulationTimeout(OracleError):
    """Caller-imposed deadline exceeded"""
    status_code = 504
