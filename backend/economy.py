"""
Economy Simulation Engine

This module implements the simulation coordinator that advances the agent
population through discrete steps:

1. Strategy phase: every agent applies its own strategy rule
2. Policy phase: UBI and (after AGI deployment) the compute tax
3. History sampling: aggregate metrics recorded every few steps

The AGI deployment shock is a one-time regime change applied on request.
All randomness lives in population construction; stepping is deterministic.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np

from agents import Agent
from config import CONFIG, SimulationConfig, SimulationParameters

logger = logging.getLogger(__name__)


def calculate_gini(wealths: Iterable[float]) -> float:
    """
    Gini coefficient of a wealth distribution.

    Uses the sorted discrete form sum((2i - n - 1) * w_i) / (n * S) with
    1-based i. Returns 0.0 for an empty population or zero total wealth.
    """
    values = np.sort(np.asarray(list(wealths), dtype=float))
    n = values.size
    if n == 0:
        return 0.0
    total = values.sum()
    if total == 0:
        return 0.0
    ranks = np.arange(1, n + 1, dtype=float)
    return float(np.sum((2 * ranks - n - 1) * values) / (n * total))


def calculate_velocity(incomes: Iterable[float], wealths: Iterable[float],
                       scale: float = CONFIG.velocity_scale) -> float:
    """Aggregate income over aggregate wealth, scaled; 0.0 when wealth sums to zero."""
    total_wealth = float(np.sum(np.asarray(list(wealths), dtype=float)))
    if total_wealth == 0:
        return 0.0
    total_income = float(np.sum(np.asarray(list(incomes), dtype=float)))
    return total_income / total_wealth * scale


def _cohort_mean(values: List[float]) -> float:
    """Mean of a cohort attribute; empty cohorts yield 0.0."""
    if not values:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


@dataclass
class History:
    """Aggregate metrics sampled every `history_sample_interval` steps."""

    steps: List[int] = field(default_factory=list)
    gini: List[float] = field(default_factory=list)
    velocity: List[float] = field(default_factory=list)
    worker_happiness: List[float] = field(default_factory=list)
    capitalist_happiness: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.steps)

    def record(self, step: int, gini: float, velocity: float,
               worker_happiness: float, capitalist_happiness: float) -> None:
        self.steps.append(step)
        self.gini.append(gini)
        self.velocity.append(velocity)
        self.worker_happiness.append(worker_happiness)
        self.capitalist_happiness.append(capitalist_happiness)

    def rows(self) -> List[Dict[str, float]]:
        """One dict per sample, positionally aligned across the series."""
        return [
            {
                "step": s,
                "gini": g,
                "velocity": v,
                "worker_happiness": wh,
                "capitalist_happiness": ch,
            }
            for s, g, v, wh, ch in zip(
                self.steps, self.gini, self.velocity,
                self.worker_happiness, self.capitalist_happiness,
            )
        ]

    def to_dict(self) -> Dict[str, List[float]]:
        return {
            "steps": list(self.steps),
            "gini": list(self.gini),
            "velocity": list(self.velocity),
            "workerHappiness": list(self.worker_happiness),
            "capitalistHappiness": list(self.capitalist_happiness),
        }

    @staticmethod
    def empty_dict() -> Dict[str, List[float]]:
        return History().to_dict()


class Economy:
    """
    Main simulation coordinator for the AGI economy model.

    Holds the agent population, the step counter, the deployment flag and
    the sampled history. Callers own the instance; there is no module-level
    simulation state.
    """

    def __init__(
        self,
        agents: List[Agent],
        params: Optional[SimulationParameters] = None,
        config: Optional[SimulationConfig] = None,
    ):
        """
        Initialize the economy with pre-constructed agents.

        Args:
            agents: Agent population (ids 0..N-1)
            params: Per-run parameters (policy levels, AGI boost)
            config: Tuning constants (defaults to the global CONFIG)
        """
        self.agents = agents
        self.params = params or SimulationParameters()
        self.config = config or CONFIG

        self.step_count = 0
        self.agi_deployed = False
        self.history = History()

    @property
    def workers(self) -> List[Agent]:
        return [a for a in self.agents if a.is_worker]

    @property
    def capitalists(self) -> List[Agent]:
        return [a for a in self.agents if a.is_capitalist]

    def step(self) -> None:
        """Advance the simulation by exactly one step."""
        self.step_count += 1

        workers = self.workers
        capitalists = self.capitalists

        for agent in self.agents:
            agent.apply_strategy(self.config.strategies)

        self._apply_policies(workers, capitalists)

        if self.step_count % self.config.history_sample_interval == 0:
            self._record_history(workers, capitalists)

    def advance(self, steps: int) -> None:
        """Run `steps` consecutive steps synchronously."""
        for _ in range(steps):
            self.step()
        logger.info(f"Advanced {steps} steps (now at step {self.step_count})")

    def _policies_active(self) -> bool:
        p = self.params
        return p.ubi > 0 or (p.compute_tax > 0 and self.agi_deployed)

    def _apply_policies(self, workers: List[Agent], capitalists: List[Agent]) -> None:
        if not self._policies_active():
            return

        p = self.params
        effects = self.config.policy

        if p.ubi > 0:
            for worker in workers:
                worker.receive_transfer(p.ubi, effects.ubi_happiness_gain)

        if p.compute_tax > 0 and self.agi_deployed:
            revenue = self._collect_compute_tax(capitalists)
            # Nothing to hand out to an empty workforce
            if workers:
                share = revenue / len(workers)
                for worker in workers:
                    worker.receive_transfer(share)

    def _collect_compute_tax(self, capitalists: List[Agent]) -> float:
        """
        Tax the AGI-attributable share of each capitalist's income.

        The surplus is the part of income above what it would be without the
        deployment multiplier: income * (1 - 1/agi_boost).
        """
        p = self.params
        surplus_share = 1.0 - 1.0 / p.agi_boost
        revenue = 0.0
        for capitalist in capitalists:
            surplus = capitalist.income * surplus_share
            tax = surplus * p.compute_tax
            revenue += capitalist.pay_tax(tax, self.config.policy.compute_tax_happiness_cost)
        return revenue

    def _record_history(self, workers: List[Agent], capitalists: List[Agent]) -> None:
        gini = self.gini()
        velocity = self.velocity()
        worker_happiness = _cohort_mean([w.happiness for w in workers])
        capitalist_happiness = _cohort_mean([c.happiness for c in capitalists])
        self.history.record(self.step_count, gini, velocity, worker_happiness, capitalist_happiness)
        logger.debug(
            f"Step {self.step_count}: gini={gini:.3f} velocity={velocity:.3f} "
            f"worker_happiness={worker_happiness:.3f} capitalist_happiness={capitalist_happiness:.3f}"
        )

    def deploy_agi(self) -> bool:
        """
        Apply the one-time AGI deployment shock.

        Capitalist income is multiplied by agi_boost and wealth by 1.5;
        worker income drops to 30% and happiness halves (clamped on the next
        strategy phase). Government agents are unaffected.

        Returns:
            True if the shock was applied, False if AGI was already deployed
        """
        if self.agi_deployed:
            return False

        self.agi_deployed = True
        shock = self.config.shock
        for agent in self.agents:
            if agent.is_capitalist:
                agent.income *= self.params.agi_boost
                agent.wealth *= shock.capitalist_wealth_multiplier
            elif agent.is_worker:
                agent.income *= shock.worker_income_multiplier
                agent.happiness *= shock.worker_happiness_multiplier

        logger.info(f"AGI deployed at step {self.step_count} (boost x{self.params.agi_boost})")
        return True

    def gini(self) -> float:
        return calculate_gini(a.wealth for a in self.agents)

    def velocity(self) -> float:
        return calculate_velocity(
            [a.income for a in self.agents],
            [a.wealth for a in self.agents],
            self.config.velocity_scale,
        )

    def get_stats(self) -> Dict[str, object]:
        """
        Point-in-time summary of the economy.

        Returns:
            Dictionary with step, inequality and velocity metrics, cohort
            sizes and mean happiness/wealth per cohort
        """
        workers = self.workers
        capitalists = self.capitalists
        return {
            "step": self.step_count,
            "gini": self.gini(),
            "velocity": self.velocity(),
            "workerHappiness": _cohort_mean([w.happiness for w in workers]),
            "capitalistHappiness": _cohort_mean([c.happiness for c in capitalists]),
            "agiDeployed": self.agi_deployed,
            "workerCount": len(workers),
            "capitalistCount": len(capitalists),
            "avgWorkerWealth": _cohort_mean([w.wealth for w in workers]),
            "avgCapitalistWealth": _cohort_mean([c.wealth for c in capitalists]),
        }


def derive_events(stats: Dict[str, object], config: Optional[SimulationConfig] = None) -> List[Dict[str, str]]:
    """
    Classify notable conditions in a stats snapshot.

    Checks run in a fixed order (inequality, velocity, steady state) and are
    not mutually exclusive.
    """
    thresholds = (config or CONFIG).events
    gini = stats["gini"]
    velocity = stats["velocity"]

    events = []
    if gini > thresholds.severe_inequality_gini:
        events.append({
            "type": "warning",
            "message": f"Gini coefficient above {thresholds.severe_inequality_gini}: severe wealth inequality",
        })
    if velocity < thresholds.stagnant_velocity:
        events.append({
            "type": "warning",
            "message": "Money velocity critically low: spending is near-stagnant",
        })
    if (gini < thresholds.steady_state_max_gini
            and velocity > thresholds.steady_state_min_velocity
            and stats["agiDeployed"]):
        events.append({"type": "success", "message": "System reached steady state"})
    return events
