"""
Simulation Configuration

Centralizes the tunable constants of the AGI economy model and the
per-run SimulationParameters supplied by callers.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class ConfigurationError(ValueError):
    """Raised when simulation parameters fail validation."""


@dataclass
class PopulationConfig:
    """Band layout and initial draws for a fresh population."""

    # Band boundaries as fractions of the population (floor-divided)
    worker_fraction: float = 0.8
    capitalist_upper_fraction: float = 0.999  # capitalists fill [0.8N, 0.999N)

    # Workers: wealth = exp(base + U * spread), income = mean + (U - 0.5) * range
    worker_log_wealth_base: float = 2.0
    worker_log_wealth_spread: float = 0.5
    worker_income_mean: float = 100.0
    worker_income_range: float = 40.0
    worker_happiness: float = 0.6

    # Capitalists
    capitalist_log_wealth_base: float = 6.0
    capitalist_log_wealth_spread: float = 1.5
    capitalist_income_mean: float = 500.0
    capitalist_income_range: float = 400.0
    capitalist_happiness: float = 0.7

    # Government
    government_wealth: float = 1_000_000.0
    government_income: float = 0.0
    government_happiness: float = 0.5


@dataclass
class StrategyEffectsConfig:
    """Per-step effects of each agent strategy."""

    save_income_fraction: float = 0.3
    save_happiness_cost: float = 0.005

    spend_wealth_threshold: float = 10.0
    spend_wealth_retention: float = 0.95
    spend_happiness_gain: float = 0.01

    invest_wealth_growth: float = 1.02
    invest_income_growth: float = 1.002


@dataclass
class PolicyEffectsConfig:
    """Happiness side effects of redistribution policies."""

    ubi_happiness_gain: float = 0.005
    compute_tax_happiness_cost: float = 0.003


@dataclass
class DeploymentShockConfig:
    """Multipliers applied once when AGI is deployed."""

    capitalist_wealth_multiplier: float = 1.5
    worker_income_multiplier: float = 0.3
    worker_happiness_multiplier: float = 0.5


@dataclass
class EventThresholdConfig:
    """Thresholds for the events reported after each advance."""

    severe_inequality_gini: float = 0.7
    stagnant_velocity: float = 0.5
    steady_state_max_gini: float = 0.5
    steady_state_min_velocity: float = 1.5


@dataclass
class SimulationConfig:
    """Master configuration for the entire simulation."""

    population: PopulationConfig = field(default_factory=PopulationConfig)
    strategies: StrategyEffectsConfig = field(default_factory=StrategyEffectsConfig)
    policy: PolicyEffectsConfig = field(default_factory=PolicyEffectsConfig)
    shock: DeploymentShockConfig = field(default_factory=DeploymentShockConfig)
    events: EventThresholdConfig = field(default_factory=EventThresholdConfig)

    history_sample_interval: int = 5  # record metrics when step % interval == 0
    velocity_scale: float = 10.0

    def __post_init__(self):
        """Validation and derived values."""
        if self.history_sample_interval <= 0:
            raise ValueError("history_sample_interval must be positive")
        if not (0.0 <= self.population.worker_fraction <= self.population.capitalist_upper_fraction <= 1.0):
            raise ValueError("population band fractions must satisfy 0 <= worker <= capitalist <= 1")


# Global configuration instance
CONFIG = SimulationConfig()


# Wire (camelCase) name -> field name
_PARAMETER_ALIASES = {
    "nAgents": "n_agents",
    "agiBoost": "agi_boost",
    "workerRationality": "worker_rationality",
    "herdEffect": "herd_effect",
    "ubi": "ubi",
    "computeTax": "compute_tax",
    "workHours": "work_hours",
    "seed": "seed",
}


def _is_real(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class SimulationParameters:
    """
    Configuration snapshot fixed when a simulation is created.

    worker_rationality, herd_effect and work_hours are accepted and kept
    for callers that round-trip them, but nothing in the step rule reads
    them yet.
    """

    n_agents: int = 1000
    agi_boost: float = 5.0  # capitalist income multiplier at deployment
    worker_rationality: float = 0.4  # reserved
    herd_effect: float = 0.5  # reserved
    ubi: float = 0.0  # per worker per step
    compute_tax: float = 0.0  # [0,1] share of the AGI-era income surplus
    work_hours: float = 4  # reserved
    seed: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.n_agents, bool) or not isinstance(self.n_agents, int):
            raise ConfigurationError(f"nAgents must be an integer, got {self.n_agents!r}")
        if self.n_agents < 0:
            raise ConfigurationError(f"nAgents cannot be negative, got {self.n_agents}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")

        for name in ("agi_boost", "worker_rationality", "herd_effect", "ubi", "compute_tax", "work_hours"):
            value = getattr(self, name)
            if not _is_real(value) or not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")

        if self.agi_boost <= 0:
            raise ConfigurationError(f"agiBoost must be positive, got {self.agi_boost}")
        if self.ubi < 0:
            raise ConfigurationError(f"ubi cannot be negative, got {self.ubi}")
        if not (0.0 <= self.compute_tax <= 1.0):
            raise ConfigurationError(f"computeTax must be in [0,1], got {self.compute_tax}")
        if self.work_hours < 0:
            raise ConfigurationError(f"workHours cannot be negative, got {self.work_hours}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SimulationParameters":
        """
        Build parameters from a request-style mapping.

        Accepts camelCase keys (nAgents, agiBoost, ...) as well as the field
        names themselves. Unrecognized keys are stored in `extra`.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"parameters must be a mapping, got {type(data).__name__}")

        known = set(_PARAMETER_ALIASES.values())
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = _PARAMETER_ALIASES.get(key, key)
            if name in known:
                if value is not None:
                    kwargs[name] = value
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire (camelCase) names."""
        out = {alias: getattr(self, name) for alias, name in _PARAMETER_ALIASES.items()}
        out.update(self.extra)
        return out
