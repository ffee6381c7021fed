"""
EcoSim Agent System

Defines the economic actors of the AGI economy model. Each agent follows a
fixed strategy that determines how its wealth, income and happiness change
every step. Agents never interact with one another directly; redistribution
is handled by the Economy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from config import CONFIG, StrategyEffectsConfig


class AgentType(str, Enum):
    WORKER = "worker"
    CAPITALIST = "capitalist"
    GOVERNMENT = "government"


class Strategy(str, Enum):
    NORMAL = "normal"
    SAVE = "save"
    SPEND = "spend"
    INVEST = "invest"
    REGULATE = "regulate"


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(slots=True)
class Agent:
    """
    Represents one economic actor in the simulation.

    agent_type and strategy are fixed at creation; wealth, income and
    happiness are mutated in place by the Economy every step.
    """

    # Identification
    agent_id: int
    agent_type: AgentType

    # Economic state
    wealth: float
    income: float
    happiness: float  # 0-1 scale after every step
    strategy: Strategy = Strategy.NORMAL

    def __post_init__(self):
        """Coerce enum fields; unknown names raise ValueError."""
        self.agent_type = AgentType(self.agent_type)
        self.strategy = Strategy(self.strategy)

    @property
    def is_worker(self) -> bool:
        return self.agent_type is AgentType.WORKER

    @property
    def is_capitalist(self) -> bool:
        return self.agent_type is AgentType.CAPITALIST

    def to_dict(self) -> Dict[str, object]:
        """
        Serialize all fields to basic Python types.

        Returns:
            Dictionary representation of the agent state
        """
        return {
            "id": self.agent_id,
            "type": self.agent_type.value,
            "wealth": self.wealth,
            "income": self.income,
            "happiness": self.happiness,
            "strategy": self.strategy.value,
        }

    def apply_strategy(self, effects: Optional[StrategyEffectsConfig] = None) -> None:
        """
        Apply this agent's strategy for one step, then clamp happiness to [0,1].

        Args:
            effects: Strategy constants (defaults to CONFIG.strategies)
        """
        cfg = effects or CONFIG.strategies
        strategy = self.strategy

        if strategy is Strategy.SAVE:
            self.wealth += self.income * cfg.save_income_fraction
            self.happiness = max(0.0, self.happiness - cfg.save_happiness_cost)
        elif strategy is Strategy.SPEND:
            if self.wealth > cfg.spend_wealth_threshold:
                self.wealth *= cfg.spend_wealth_retention
                self.happiness = min(1.0, self.happiness + cfg.spend_happiness_gain)
        elif strategy is Strategy.INVEST:
            # Non-capitalists with this strategy are unaffected
            if self.is_capitalist:
                self.wealth *= cfg.invest_wealth_growth
                self.income *= cfg.invest_income_growth
        elif strategy in (Strategy.NORMAL, Strategy.REGULATE):
            pass
        else:
            raise ValueError(f"Unhandled strategy: {strategy!r}")

        self.happiness = _clamp_unit(self.happiness)

    def receive_transfer(self, amount: float, happiness_gain: float = 0.0) -> None:
        """Add a per-step income transfer (UBI, tax redistribution)."""
        self.income += amount
        if happiness_gain:
            self.happiness = min(1.0, self.happiness + happiness_gain)

    def pay_tax(self, amount: float, happiness_cost: float = 0.0) -> float:
        """Deduct a tax from income and return the amount collected."""
        self.income -= amount
        if happiness_cost:
            self.happiness = max(0.0, self.happiness - happiness_cost)
        return amount
