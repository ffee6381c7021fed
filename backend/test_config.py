"""
Unit tests for simulation parameters and tuning configuration
"""

import math

import pytest
from config import CONFIG, ConfigurationError, SimulationConfig, SimulationParameters


class TestSimulationParameters:
    """Defaults, request-style parsing and validation"""

    def test_defaults(self):
        """Unset parameters take the documented defaults"""
        params = SimulationParameters()
        assert params.n_agents == 1000
        assert params.agi_boost == 5.0
        assert params.worker_rationality == 0.4
        assert params.herd_effect == 0.5
        assert params.ubi == 0.0
        assert params.compute_tax == 0.0
        assert params.work_hours == 4
        assert params.extra == {}

    def test_from_dict_camel_case(self):
        """Wire-style camelCase keys map onto fields"""
        params = SimulationParameters.from_dict({"nAgents": 100, "ubi": 50, "computeTax": 0.25})
        assert params.n_agents == 100
        assert params.ubi == 50
        assert params.compute_tax == 0.25
        assert params.agi_boost == 5.0

    def test_from_dict_snake_case(self):
        """Field names are accepted as keys too"""
        params = SimulationParameters.from_dict({"agi_boost": 3.0})
        assert params.agi_boost == 3.0

    def test_unrecognized_keys_kept(self):
        """Unknown keys are stored in extra and serialized back"""
        params = SimulationParameters.from_dict({"nAgents": 10, "scenario": "baseline"})
        assert params.extra == {"scenario": "baseline"}
        assert params.to_dict()["scenario"] == "baseline"
        assert params.to_dict()["nAgents"] == 10

    def test_none_values_fall_back_to_defaults(self):
        """Null values are treated as missing"""
        params = SimulationParameters.from_dict({"agiBoost": None})
        assert params.agi_boost == 5.0

    def test_empty_mapping(self):
        """No mapping at all gives the default parameters"""
        assert SimulationParameters.from_dict(None) == SimulationParameters()

    def test_non_mapping_rejected(self):
        """A list body is not a parameter set"""
        with pytest.raises(ConfigurationError):
            SimulationParameters.from_dict([1, 2, 3])

    @pytest.mark.parametrize("overrides", [
        {"n_agents": -1},
        {"n_agents": "100"},
        {"n_agents": True},
        {"n_agents": 10.5},
        {"agi_boost": 0},
        {"agi_boost": -2.0},
        {"ubi": -1.0},
        {"ubi": math.nan},
        {"compute_tax": 1.5},
        {"compute_tax": -0.1},
        {"work_hours": -1},
        {"herd_effect": math.inf},
        {"worker_rationality": "high"},
        {"seed": "abc"},
    ])
    def test_invalid_values_rejected(self, overrides):
        """Out-of-range or non-numeric values raise ConfigurationError"""
        with pytest.raises(ConfigurationError):
            SimulationParameters(**overrides)

    def test_configuration_error_is_value_error(self):
        """Callers catching ValueError also catch configuration errors"""
        assert issubclass(ConfigurationError, ValueError)

    def test_parameters_are_immutable(self):
        """Parameters cannot be changed after construction"""
        params = SimulationParameters()
        with pytest.raises(AttributeError):
            params.ubi = 10.0


class TestSimulationConfig:
    """Tuning constants match the model and are validated"""

    def test_defaults(self):
        """Global constants carry the model's values"""
        assert CONFIG.history_sample_interval == 5
        assert CONFIG.velocity_scale == 10.0
        assert CONFIG.population.worker_fraction == 0.8
        assert CONFIG.shock.capitalist_wealth_multiplier == 1.5

    def test_invalid_sample_interval(self):
        """A zero sample interval is rejected"""
        with pytest.raises(ValueError):
            SimulationConfig(history_sample_interval=0)
