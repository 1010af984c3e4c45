"""Tests for SimulationConfig and ProportionalSettings."""

import pytest

from famsim.core.config import (
    GameVariant,
    InvalidConfiguration,
    ProportionalSettings,
    ReproductionMode,
    SimulationConfig,
    SpaceKind,
)


class TestConfigDefaults:
    def test_default_experiment_name(self):
        c = SimulationConfig()
        assert c.experiment_name == "default"

    def test_default_modes(self):
        c = SimulationConfig()
        assert c.space is SpaceKind.CONTINUOUS
        assert c.game is GameVariant.PAIRWISE_COOPERATION
        assert c.reproduction_mode is ReproductionMode.CONTINUOUS

    def test_defaults_validate(self):
        c = SimulationConfig()
        assert c.validate() is c


class TestValidation:
    def test_string_enums_coerced(self):
        c = SimulationConfig(space="grid", game="public_goods",
                             reproduction_mode="single_event").validate()
        assert c.space is SpaceKind.GRID
        assert c.game is GameVariant.PUBLIC_GOODS
        assert c.reproduction_mode is ReproductionMode.SINGLE_EVENT

    def test_unknown_game_rejected(self):
        with pytest.raises(InvalidConfiguration, match="game"):
            SimulationConfig(game="prisoners_dilemma").validate()

    def test_non_positive_dimension_rejected(self):
        with pytest.raises(InvalidConfiguration):
            SimulationConfig(dimension=0).validate()

    def test_non_positive_step_size_rejected(self):
        with pytest.raises(InvalidConfiguration):
            SimulationConfig(step_size=0.0).validate()

    @pytest.mark.parametrize("name", [
        "initial_cooperator_fraction", "familiarity_bias", "mutation_rate", "error_rate",
    ])
    def test_probability_out_of_range(self, name):
        with pytest.raises(InvalidConfiguration, match=name):
            SimulationConfig(**{name: 1.5}).validate()

    def test_negative_memory_rejected(self):
        with pytest.raises(InvalidConfiguration, match="memory_capacity"):
            SimulationConfig(memory_capacity=-1.0).validate()

    def test_invalid_configuration_is_value_error(self):
        with pytest.raises(ValueError):
            SimulationConfig(generation_time=0).validate()


class TestSerialization:
    def test_to_dict_roundtrip(self):
        c = SimulationConfig(experiment_name="test", capacity=50, space=SpaceKind.GRID)
        c2 = SimulationConfig.from_dict(c.to_dict())
        assert c2 == c

    def test_to_dict_uses_enum_values(self):
        d = SimulationConfig(space=SpaceKind.GRID).to_dict()
        assert d["space"] == "grid"

    def test_from_dict_ignores_unknown_keys(self):
        c = SimulationConfig.from_dict({"capacity": 7, "not_a_field": 1})
        assert c.capacity == 7

    def test_to_json_roundtrip(self):
        c = SimulationConfig(experiment_name="json_test", game=GameVariant.FAMILIARITY)
        c2 = SimulationConfig.from_json(c.to_json())
        assert c2.experiment_name == "json_test"
        assert c2.game is GameVariant.FAMILIARITY

    def test_diff(self):
        c1 = SimulationConfig(cost=0.1)
        c2 = SimulationConfig(cost=0.3)
        diffs = c1.diff(c2)
        assert diffs == {"cost": (0.1, 0.3)}

    def test_diff_identical(self):
        assert SimulationConfig().diff(SimulationConfig()) == {}


class TestResolve:
    def test_zero_settings_leave_config_unchanged(self):
        c = SimulationConfig()
        assert c.resolve(ProportionalSettings()) == c

    def test_resolve_returns_copy(self):
        c = SimulationConfig(dimension=10)
        resolved = c.resolve(ProportionalSettings(density=0.5))
        assert resolved is not c
        assert c.capacity == 100
        assert resolved.capacity == 50

    def test_ranges_from_dimension(self):
        c = SimulationConfig(dimension=10).resolve(ProportionalSettings(
            view_fraction=0.2, repulse_fraction=0.5, interact_fraction=0.1,
        ))
        assert c.view_range == pytest.approx(2.0)
        assert c.repulse_range == pytest.approx(1.0)
        assert c.interact_range == pytest.approx(1.0)

    def test_payoffs_from_threshold(self):
        c = SimulationConfig(reproduction_threshold=10.0).resolve(ProportionalSettings(
            cost_benefit_ratio=0.1, fitness_scale=0.2, other_fitness_fraction=0.5,
        ))
        assert c.benefit == pytest.approx(2.0)
        assert c.cost == pytest.approx(0.2)
        assert c.background_fitness == pytest.approx(1.0)

    def test_negative_background_fitness_redrawn(self, caplog):
        c = SimulationConfig(reproduction_threshold=10.0, random_seed=3).resolve(
            ProportionalSettings(
                cost_benefit_ratio=0.1, fitness_scale=0.2, other_fitness_fraction=-2.0,
            )
        )
        net = c.benefit - c.cost
        assert c.background_fitness <= 0
        assert net + c.background_fitness >= 0
        assert "redrawn" in caplog.text

    def test_memory_and_learning(self):
        c = SimulationConfig(capacity=200, decay_rate=0.1, min_lifespan=100.0).resolve(
            ProportionalSettings(memory_fraction=0.05, learning_fraction=0.01)
        )
        assert c.memory_capacity == pytest.approx(10.0)
        assert c.learning_threshold == pytest.approx(0.9)

    def test_fitness_and_distance(self):
        c = SimulationConfig(dimension=50, reproduction_threshold=10.0).resolve(
            ProportionalSettings(initial_fitness_fraction=0.3,
                                 reproduction_distance_fraction=0.1)
        )
        assert c.initial_fitness == pytest.approx(3.0)
        assert c.reproduction_radius == pytest.approx(5.0)
