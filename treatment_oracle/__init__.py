"""Monte Carlo treatment simulation, ranking and consensus for oncology decisions."""

from treatment_oracle.config import EngineSettings
from treatment_oracle.engine import OracleEngine, run_with_deadline
from treatment_oracle.errors import OracleError

__all__ = ["EngineSettings", "OracleEngine", "OracleError", "run_with_deadline"]
