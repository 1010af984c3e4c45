"""Tests for the payoff games."""

import numpy as np
import pytest

from famsim.core.agent import Agent
from famsim.core.config import GameVariant, SimulationConfig
from famsim.core.payoff import PayoffEngine
from famsim.core.social_graph import SocialGraph
from famsim.core.spatial import ContinuousField


def _make_agent(agent_id: int, position=(0.0, 0.0), cooperator: bool = False,
                threshold: float = 2.0, **kwargs) -> Agent:
    traits = np.array([0.5, 10.0, threshold, 0.1])
    return Agent(id=agent_id, traits=traits, position=position,
                 cooperator=cooperator, **kwargs)


def _make_payoff(config: SimulationConfig, *agents: Agent) -> PayoffEngine:
    field = ContinuousField(config.dimension)
    graph = SocialGraph()
    registry = {}
    for agent in agents:
        field.place(agent.id, agent.position)
        graph.add_node(agent.id)
        registry[agent.id] = agent
    return PayoffEngine(config.validate(), field, graph, registry)


class TestPairwiseCooperation:
    def test_cooperator_pays_defector_gains(self, state):
        coop = _make_agent(0, cooperator=True)
        defector = _make_agent(1)
        engine = _make_payoff(SimulationConfig(cost=0.1, benefit=1.0), coop, defector)

        engine.interact(coop, defector, state)

        assert coop.fitness == pytest.approx(-0.1)
        assert defector.fitness == pytest.approx(1.0)

    def test_mutual_cooperation(self, state):
        a = _make_agent(0, cooperator=True)
        b = _make_agent(1, cooperator=True)
        engine = _make_payoff(SimulationConfig(cost=0.1, benefit=1.0), a, b)

        engine.interact(a, b, state)

        assert a.fitness == pytest.approx(0.9)
        assert b.fitness == pytest.approx(0.9)

    def test_mutual_defection_is_neutral(self, state):
        a, b = _make_agent(0), _make_agent(1)
        engine = _make_payoff(SimulationConfig(), a, b)
        engine.interact(a, b, state)
        assert a.fitness == 0.0
        assert b.fitness == 0.0

    def test_aggregation_cost_when_evolving(self, state):
        a = _make_agent(0, view_range=10.0)
        b = _make_agent(1, view_range=5.0)
        config = SimulationConfig(evolve_aggregation=True, aggregation_cost=0.01)
        engine = _make_payoff(config, a, b)

        engine.interact(a, b, state)

        assert a.fitness == pytest.approx(-1.0)
        assert b.fitness == pytest.approx(-0.25)

    def test_aggregation_cost_ignored_when_not_evolving(self, state):
        a = _make_agent(0, view_range=10.0)
        b = _make_agent(1, view_range=5.0)
        engine = _make_payoff(SimulationConfig(aggregation_cost=0.01), a, b)
        engine.interact(a, b, state)
        assert a.fitness == 0.0


class TestBookkeeping:
    def test_records_both_directions(self, state):
        a, b = _make_agent(0), _make_agent(1)
        engine = _make_payoff(SimulationConfig(), a, b)

        engine.interact(a, b, state)

        assert engine.graph.interaction_weight(0, 1) == 1.0
        assert engine.graph.interaction_weight(1, 0) == 1.0
        assert a.last_partner == 1
        assert b.last_partner == 0

    def test_both_players_marked_interacted(self, state):
        a, b = _make_agent(0), _make_agent(1)
        engine = _make_payoff(SimulationConfig(), a, b)
        engine.interact(a, b, state)
        assert a.has_interacted and b.has_interacted
        assert a.interaction_count == b.interaction_count == 1

    def test_public_goods_marks_out_of_range_partner(self, state):
        a = _make_agent(0, (1.0, 1.0), cooperator=True)
        b = _make_agent(1, (4.0, 1.0))
        c = _make_agent(2, (7.0, 1.0))
        config = SimulationConfig(game=GameVariant.PUBLIC_GOODS, interact_range=1.0)
        engine = _make_payoff(config, a, b, c)

        engine.interact(a, b, state)

        assert a.tick_interactions == 1
        assert b.has_interacted
        assert b.interaction_count == 1
        assert b.fitness == 0.0
        assert not c.has_interacted
        assert a.last_partner == 1

    def test_public_goods_in_range_partner_counted_once(self, state):
        a = _make_agent(0, (1.0, 1.0), cooperator=True)
        b = _make_agent(1, (1.5, 1.0))
        config = SimulationConfig(game=GameVariant.PUBLIC_GOODS, interact_range=1.0)
        engine = _make_payoff(config, a, b)

        engine.interact(a, b, state)

        assert b.tick_interactions == 1
        assert b.interaction_count == 1

    def test_network_off_skips_graph(self, state):
        a, b = _make_agent(0), _make_agent(1)
        engine = _make_payoff(SimulationConfig(use_network=False), a, b)

        engine.interact(a, b, state)

        assert engine.graph.interaction_weight(0, 1) == 0.0
        assert a.last_partner == 1


class TestOtherGames:
    def test_familiarity_game_pays_edge_weight(self, state):
        a = _make_agent(0, threshold=0.0)
        b = _make_agent(1, threshold=5.0)
        engine = _make_payoff(SimulationConfig(game=GameVariant.FAMILIARITY), a, b)

        engine.interact(a, b, state)

        # a now remembers b (weight 1 > 0); b does not remember a yet
        assert a.fitness == pytest.approx(1.0)
        assert b.fitness == 0.0

    def test_interaction_count_game(self, state):
        a, b = _make_agent(0), _make_agent(1)
        engine = _make_payoff(SimulationConfig(game=GameVariant.INTERACTION_COUNT), a, b)
        engine.interact(a, b, state)
        engine.interact(a, b, state)
        assert a.fitness == 2.0
        assert b.fitness == 2.0


class TestPublicGoods:
    def _config(self, **kwargs):
        params = dict(game=GameVariant.PUBLIC_GOODS, dimension=20,
                      interact_range=1.5, cost=0.1, benefit=1.0)
        params.update(kwargs)
        return SimulationConfig(**params)

    def test_chain_forms_one_group(self):
        a = _make_agent(0, (1.0, 1.0), cooperator=True)
        b = _make_agent(1, (2.0, 1.0), cooperator=True)
        c = _make_agent(2, (3.0, 1.0))
        far = _make_agent(3, (10.0, 10.0), cooperator=True)
        engine = _make_payoff(self._config(), a, b, c, far)

        group = engine.public_goods(a)

        assert [m.id for m in group] == [0, 1, 2]
        assert a.fitness == pytest.approx(0.4)
        assert b.fitness == pytest.approx(0.4)
        assert c.fitness == pytest.approx(1.0)
        assert far.fitness == 0.0
        assert far.tick_interactions == 0

    def test_members_marked_interacted_once(self):
        a = _make_agent(0, (1.0, 1.0), cooperator=True)
        b = _make_agent(1, (2.0, 1.0))
        engine = _make_payoff(self._config(), a, b)

        engine.public_goods(a)

        assert a.tick_interactions == 1 and a.interaction_count == 1
        assert b.tick_interactions == 1 and b.interaction_count == 1

    def test_already_interacted_excluded(self):
        a = _make_agent(0, (1.0, 1.0), cooperator=True)
        b = _make_agent(1, (2.0, 1.0), cooperator=True)
        b.mark_interacted()
        engine = _make_payoff(self._config(), a, b)

        group = engine.public_goods(a)

        assert group == [a]
        assert a.fitness == pytest.approx(-0.1)
        assert b.fitness == 0.0

    def test_group_pays_aggregation_cost(self):
        a = _make_agent(0, (1.0, 1.0), view_range=2.0)
        engine = _make_payoff(self._config(aggregation_cost=0.5), a)
        engine.public_goods(a)
        assert a.fitness == pytest.approx(-2.0)
