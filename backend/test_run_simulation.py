"""
Tests for population construction and the batch runner
"""

import random
import sqlite3

import pytest
from agents import AgentType, Strategy
from config import SimulationParameters
from run_simulation import create_economy, export_results, init_database, main


class TestCreateEconomy:
    """Population bands and initial draws"""

    def test_band_sizes_for_1000_agents(self):
        """1000 agents split into 800 workers, 199 capitalists, 1 government"""
        economy = create_economy(SimulationParameters(n_agents=1000, seed=1))
        types = [a.agent_type for a in economy.agents]

        assert types.count(AgentType.WORKER) == 800
        assert types.count(AgentType.CAPITALIST) == 199
        assert types.count(AgentType.GOVERNMENT) == 1

    def test_bands_are_contiguous_with_sequential_ids(self):
        """Ids run 0..N-1 and bands are contiguous"""
        economy = create_economy(SimulationParameters(n_agents=100, seed=1))

        assert [a.agent_id for a in economy.agents] == list(range(100))
        assert all(a.agent_type is AgentType.WORKER for a in economy.agents[:80])
        assert all(a.agent_type is AgentType.CAPITALIST for a in economy.agents[80:99])
        assert economy.agents[99].agent_type is AgentType.GOVERNMENT

    def test_initial_values_in_range(self):
        """Initial draws fall inside each band's ranges"""
        economy = create_economy(SimulationParameters(n_agents=1000, seed=3))

        for agent in economy.agents:
            if agent.agent_type is AgentType.WORKER:
                assert agent.strategy is Strategy.NORMAL
                assert 7.389 < agent.wealth < 12.19  # exp(2) .. exp(2.5)
                assert 80.0 <= agent.income < 120.0
                assert agent.happiness == 0.6
            elif agent.agent_type is AgentType.CAPITALIST:
                assert agent.strategy is Strategy.INVEST
                assert 403.4 < agent.wealth < 1808.1  # exp(6) .. exp(7.5)
                assert 300.0 <= agent.income < 700.0
                assert agent.happiness == 0.7
            else:
                assert agent.strategy is Strategy.REGULATE
                assert agent.wealth == 1_000_000.0
                assert agent.income == 0.0
                assert agent.happiness == 0.5

    def test_seed_is_reproducible(self):
        """The same seed builds the same population"""
        a = create_economy(SimulationParameters(n_agents=50, seed=42))
        b = create_economy(SimulationParameters(n_agents=50, seed=42))
        assert [x.to_dict() for x in a.agents] == [y.to_dict() for y in b.agents]

    def test_injected_rng(self):
        """An injected generator drives the draws"""
        params = SimulationParameters(n_agents=50)
        a = create_economy(params, rng=random.Random(9))
        b = create_economy(params, rng=random.Random(9))
        assert [x.wealth for x in a.agents] == [y.wealth for y in b.agents]

    def test_fresh_state(self):
        """A new economy starts at step 0, undeployed, with no history"""
        economy = create_economy(SimulationParameters(n_agents=10, seed=1))
        assert economy.step_count == 0
        assert economy.agi_deployed is False
        assert len(economy.history) == 0

    def test_small_population(self):
        """Floor division can leave a band empty"""
        economy = create_economy(SimulationParameters(n_agents=3, seed=1))
        types = [a.agent_type for a in economy.agents]
        # floor(2.4) = 2 workers, floor(2.997) = 2 -> no capitalists
        assert types == [AgentType.WORKER, AgentType.WORKER, AgentType.GOVERNMENT]


class TestExport:
    """SQLite export of history and final agents"""

    def test_export_results(self, tmp_path):
        """History rows and the agent snapshot land in their tables"""
        economy = create_economy(SimulationParameters(n_agents=20, seed=5))
        economy.advance(15)

        db_path = tmp_path / "run.db"
        init_database(str(db_path))
        conn = sqlite3.connect(str(db_path))
        try:
            export_results(economy, conn)
            steps = [row[0] for row in conn.execute("SELECT step FROM history ORDER BY step")]
            agent_count = conn.execute("SELECT COUNT(*) FROM agents").fetchone()[0]
            workers = conn.execute("SELECT COUNT(*) FROM agents WHERE agent_type = 'worker'").fetchone()[0]
        finally:
            conn.close()

        assert steps == [5, 10, 15]
        assert agent_count == 20
        assert workers == 16

    def test_main_with_deployment_and_export(self, tmp_path, capsys):
        """A batch run deploys mid-way and exports its samples"""
        db_path = tmp_path / "batch.db"
        economy = main(
            num_agents=200,
            num_steps=20,
            deploy_at=10,
            compute_tax=0.2,
            seed=11,
            export_path=str(db_path),
            report_every=5,
        )

        assert economy.step_count == 20
        assert economy.agi_deployed
        assert economy.history.steps == [5, 10, 15, 20]
        assert db_path.exists()

        out = capsys.readouterr().out
        assert "AGI ECONOMY SIMULATION" in out
        assert "Exported 4 history samples" in out

    def test_main_deploy_at_zero(self, capsys):
        """Deploying at step 0 applies the shock before the first step"""
        economy = main(num_agents=100, num_steps=5, deploy_at=0, seed=2)

        assert economy.agi_deployed
        # Worker happiness halved before any step ran
        assert economy.history.worker_happiness == [pytest.approx(0.3)]

    @pytest.mark.parametrize("deploy_at", [-1, 6])
    def test_main_rejects_unreachable_deploy_step(self, deploy_at, capsys):
        """A deployment step outside the run is an error"""
        with pytest.raises(ValueError):
            main(num_agents=10, num_steps=5, deploy_at=deploy_at, seed=2)
