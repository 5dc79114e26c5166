"""
Engine configuration.

Settings are loaded from a YAML file (config/engine.yaml by default) and
can be overridden with environment variables. A missing file falls back
to the defaults below.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from treatment_oracle.models.simulation import AcceptableOutcome


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "engine.yaml"


@dataclass
class SimulationSettings:
    """Fan-out and statistics settings for simulation runs."""

    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    executor: str = "thread"  # "thread" or "process"
    chunk_size: int = 250  # Universes per worker task
    percentiles: tuple[float, ...] = (5, 25, 50, 75, 95)
    convergence_tolerance: float = 0.02


@dataclass
class SensitivitySettings:
    """Settings for per-factor re-simulation."""

    max_universes: int = 200  # Reduced universe count per re-run
    bisection_steps: int = 8
    scan_points: int = 4  # Grid points per search range before bisecting
    max_shift: float = 1.0  # Largest multiplier shift searched for a flip
    cost_warning_steps: int = 2_000_000  # Warn above this many simulated months


@dataclass
class ConsensusSettings:
    """Settings for the consensus session registry."""

    max_finalized_sessions: Optional[int] = 1000  # Oldest finalized sessions are dropped beyond this


@dataclass
class ApiSettings:
    """Settings for the HTTP layer."""

    simulation_deadline_seconds: float = 120.0
    max_jobs: Optional[int] = 1000  # Oldest finished jobs are dropped beyond this


@dataclass
class EngineSettings:
    """Complete engine configuration."""

    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    sensitivity: SensitivitySettings = field(default_factory=SensitivitySettings)
    acceptable_outcome: AcceptableOutcome = field(default_factory=AcceptableOutcome)
    consensus: ConsensusSettings = field(default_factory=ConsensusSettings)
    api: ApiSettings = field(default_factory=ApiSettings)

    @classmethod
    def from_config(cls, config_path: Optional[Union[str, Path]] = None) -> "EngineSettings":
        """Load settings from a YAML file, then apply environment overrides."""
        if config_path is None:
            config_path = os.getenv("ORACLE_CONFIG", DEFAULT_CONFIG_PATH)

        settings = cls()

        try:
            with open(config_path) as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Config not found at {config_path}, using defaults")
            config = {}

        sim = config.get("simulation", {})
        if sim:
            settings.simulation = SimulationSettings(
                max_workers=int(sim.get("max_workers") or settings.simulation.max_workers),
                executor=sim.get("executor", settings.simulation.executor),
                chunk_size=int(sim.get("chunk_size", settings.simulation.chunk_size)),
                percentiles=tuple(sim.get("percentiles", settings.simulation.percentiles)),
                convergence_tolerance=float(
                    sim.get("convergence_tolerance", settings.simulation.convergence_tolerance)
                ),
            )

        sens = config.get("sensitivity", {})
        if sens:
            settings.sensitivity = SensitivitySettings(
                max_universes=int(sens.get("max_universes", settings.sensitivity.max_universes)),
                bisection_steps=int(sens.get("bisection_steps", settings.sensitivity.bisection_steps)),
                scan_points=int(sens.get("scan_points", settings.sensitivity.scan_points)),
                max_shift=float(sens.get("max_shift", settings.sensitivity.max_shift)),
                cost_warning_steps=int(
                    sens.get("cost_warning_steps", settings.sensitivity.cost_warning_steps)
                ),
            )

        if config.get("acceptable_outcome"):
            settings.acceptable_outcome = AcceptableOutcome(**config["acceptable_outcome"])

        consensus = config.get("consensus", {})
        if consensus:
            settings.consensus = ConsensusSettings(
                max_finalized_sessions=consensus.get(
                    "max_finalized_sessions", settings.consensus.max_finalized_sessions
                ),
            )

        api = config.get("api", {})
        if api:
            settings.api = ApiSettings(
                simulation_deadline_seconds=float(
                    api.get("simulation_deadline_seconds", settings.api.simulation_deadline_seconds)
                ),
                max_jobs=api.get("max_jobs", settings.api.max_jobs),
            )

        settings._apply_env_overrides()
        return settings

    def _apply_env_overrides(self):
        """Environment variables win over the file."""
        max_workers = os.getenv("ORACLE_MAX_WORKERS")
        if max_workers:
            self.simulation.max_workers = int(max_workers)

        executor = os.getenv("ORACLE_EXECUTOR")
        if executor:
            self.simulation.executor = executor

        if self.simulation.executor not in ("thread", "process"):
            logger.warning(
                f"Unknown executor '{self.simulation.executor}', falling back to thread pool"
            )
            self.simulation.executor = "thread"
