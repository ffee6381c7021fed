"""
Run an AGI economy simulation from the command line.

Builds a population, advances it for the requested number of steps
(optionally deploying AGI part-way through) and prints progress every few
steps. The sampled history and the final agent snapshot can be exported
to SQLite for offline analysis.
"""

import argparse
import logging
import math
import random
import sqlite3
import time
from pathlib import Path
from typing import List, Optional

from agents import Agent, AgentType, Strategy
from config import CONFIG, PopulationConfig, SimulationParameters
from economy import Economy, derive_events

logger = logging.getLogger(__name__)


def create_economy(
    params: Optional[SimulationParameters] = None,
    rng: Optional[random.Random] = None,
    population: Optional[PopulationConfig] = None,
) -> Economy:
    """
    Create an economy with the worker / capitalist / government bands.

    Args:
        params: Simulation parameters (n_agents, policies, seed)
        rng: Source of uniform draws; built from params.seed when omitted
        population: Band layout and draw constants (defaults to CONFIG.population)

    Returns:
        Economy instance at step 0
    """
    params = params or SimulationParameters()
    rng = rng or random.Random(params.seed)
    pop = population or CONFIG.population
    n = params.n_agents

    worker_end = math.floor(n * pop.worker_fraction)
    capitalist_end = math.floor(n * pop.capitalist_upper_fraction)

    agents: List[Agent] = []
    for i in range(worker_end):
        agents.append(Agent(
            agent_id=i,
            agent_type=AgentType.WORKER,
            wealth=math.exp(pop.worker_log_wealth_base + rng.random() * pop.worker_log_wealth_spread),
            income=pop.worker_income_mean + (rng.random() - 0.5) * pop.worker_income_range,
            happiness=pop.worker_happiness,
            strategy=Strategy.NORMAL,
        ))

    for i in range(worker_end, capitalist_end):
        agents.append(Agent(
            agent_id=i,
            agent_type=AgentType.CAPITALIST,
            wealth=math.exp(pop.capitalist_log_wealth_base + rng.random() * pop.capitalist_log_wealth_spread),
            income=pop.capitalist_income_mean + (rng.random() - 0.5) * pop.capitalist_income_range,
            happiness=pop.capitalist_happiness,
            strategy=Strategy.INVEST,
        ))

    for i in range(capitalist_end, n):
        agents.append(Agent(
            agent_id=i,
            agent_type=AgentType.GOVERNMENT,
            wealth=pop.government_wealth,
            income=pop.government_income,
            happiness=pop.government_happiness,
            strategy=Strategy.REGULATE,
        ))

    logger.info(
        f"Created economy with {worker_end} workers, {capitalist_end - worker_end} capitalists "
        f"and {n - capitalist_end} government agents"
    )
    return Economy(agents, params)


def init_database(db_path: str):
    """Create the history and agent snapshot tables."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS history (
            step INTEGER PRIMARY KEY,
            gini REAL,
            velocity REAL,
            worker_happiness REAL,
            capitalist_happiness REAL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS agents (
            agent_id INTEGER PRIMARY KEY,
            agent_type TEXT,
            strategy TEXT,
            wealth REAL,
            income REAL,
            happiness REAL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_agents_type ON agents(agent_type)")

    conn.commit()
    conn.close()


def export_results(economy: Economy, conn: sqlite3.Connection) -> None:
    """Write the sampled history and the current agent snapshot."""
    cursor = conn.cursor()
    cursor.executemany(
        """
        INSERT OR REPLACE INTO history
            (step, gini, velocity, worker_happiness, capitalist_happiness)
        VALUES (:step, :gini, :velocity, :worker_happiness, :capitalist_happiness)
        """,
        economy.history.rows(),
    )
    cursor.executemany(
        """
        INSERT OR REPLACE INTO agents
            (agent_id, agent_type, strategy, wealth, income, happiness)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (a.agent_id, a.agent_type.value, a.strategy.value, a.wealth, a.income, a.happiness)
            for a in economy.agents
        ],
    )
    conn.commit()


def main(
    num_agents: int = 1000,
    num_steps: int = 100,
    deploy_at: Optional[int] = None,
    agi_boost: float = 5.0,
    ubi: float = 0.0,
    compute_tax: float = 0.0,
    seed: Optional[int] = None,
    export_path: Optional[str] = None,
    report_every: int = 10,
) -> Economy:
    """Run the simulation with the given settings and return the final economy."""
    print("=" * 80)
    print(f"AGI ECONOMY SIMULATION ({num_agents:,} agents, {num_steps} steps)")
    print("=" * 80)
    print()

    params = SimulationParameters(
        n_agents=num_agents,
        agi_boost=agi_boost,
        ubi=ubi,
        compute_tax=compute_tax,
        seed=seed,
    )
    start_time = time.time()
    economy = create_economy(params)
    print(f"Economy creation time: {time.time() - start_time:.2f} seconds")
    print()

    if deploy_at is not None and not (0 <= deploy_at <= num_steps):
        raise ValueError(f"deploy_at must be between 0 and {num_steps}, got {deploy_at}")
    if deploy_at == 0:
        economy.deploy_agi()

    print("Step |   Gini | Velocity | Worker Happy | Capitalist Happy | AGI")
    print("-" * 80)

    for _ in range(num_steps):
        economy.step()
        if deploy_at is not None and economy.step_count == deploy_at:
            economy.deploy_agi()

        if (report_every > 0 and economy.step_count % report_every == 0) or economy.step_count == num_steps:
            stats = economy.get_stats()
            print(
                f"{stats['step']:4d} | {stats['gini']:6.3f} | {stats['velocity']:8.3f} | "
                f"{stats['workerHappiness']:12.3f} | {stats['capitalistHappiness']:16.3f} | "
                f"{'yes' if stats['agiDeployed'] else 'no'}"
            )

    print()
    stats = economy.get_stats()
    for event in derive_events(stats):
        print(f"[{event['type'].upper()}] {event['message']}")
    print(f"Avg worker wealth: {stats['avgWorkerWealth']:,.2f}")
    print(f"Avg capitalist wealth: {stats['avgCapitalistWealth']:,.2f}")

    if export_path:
        db_path = Path(export_path)
        if db_path.exists():
            db_path.unlink()
            print(f"Removed existing database: {db_path}")
        init_database(str(db_path))
        conn = sqlite3.connect(str(db_path))
        try:
            export_results(economy, conn)
        finally:
            conn.close()
        print(f"Exported {len(economy.history)} history samples to {db_path}")

    return economy


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the AGI economy simulation")
    parser.add_argument("--agents", type=int, default=1000, help="Number of agents")
    parser.add_argument("--steps", type=int, default=100, help="Number of steps to run")
    parser.add_argument("--deploy-at", type=int, default=None, help="Step at which AGI is deployed")
    parser.add_argument("--agi-boost", type=float, default=5.0, help="Capitalist income multiplier on deployment")
    parser.add_argument("--ubi", type=float, default=0.0, help="UBI per worker per step")
    parser.add_argument("--compute-tax", type=float, default=0.0, help="Tax rate on the AGI income surplus")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the initial population")
    parser.add_argument("--export", default=None, help="SQLite file for history and final agents")
    parser.add_argument("--report-every", type=int, default=10, help="Print progress every N steps")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")

    args = parser.parse_args()
    if args.deploy_at is not None and not (0 <= args.deploy_at <= args.steps):
        parser.error(f"--deploy-at must be between 0 and --steps ({args.steps})")
    logging.basicConfig(level=args.log_level.upper())

    main(
        num_agents=args.agents,
        num_steps=args.steps,
        deploy_at=args.deploy_at,
        agi_boost=args.agi_boost,
        ubi=args.ubi,
        compute_tax=args.compute_tax,
        seed=args.seed,
        export_path=args.export,
        report_every=args.report_every,
    )
