"""
Population lifecycle: birth, reproduction, death, id allocation.

Two turnover modes, fixed at construction:

* CONTINUOUS: each agent reproduces once its fitness reaches the threshold
  (paying a cost whether or not there is room for offspring) and dies when it
  outlives its lifespan or, under strong selection, when fitness goes
  negative. Freed ids are reused oldest-first.
* SINGLE_EVENT: the whole population is replaced at once by
  fitness-proportional selection; ids are never reused.

Every birth and death adjusts the ``SimulationState`` aggregates by exactly
that agent's contribution.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Iterator, Sequence

import numpy as np

from famsim.core.agent import Agent
from famsim.core.config import ReproductionMode, SpaceKind
from famsim.core.movement import behavior_for
from famsim.core.traits import DEFAULT_TRAITS, TraitSystem

if TYPE_CHECKING:
    from famsim.core.config import SimulationConfig
    from famsim.core.random_stream import RandomStream
    from famsim.core.social_graph import SocialGraph
    from famsim.core.spatial import Position, SpatialField
    from famsim.core.state import SimulationState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fitness-proportional selection
# ---------------------------------------------------------------------------
def cumulative_fitness(fitness: Sequence[float]) -> np.ndarray:
    """
    Running sum of fitness shifted so every entry is at least 1.

    Values are shifted by ``-min(0, min(fitness)) + 1``:
    ``[1, 2, 3]`` becomes ``[2, 3, 4]`` and accumulates to ``[2, 5, 9]``.
    """
    values = np.asarray(fitness, dtype=np.float64)
    if values.size == 0:
        return values
    shift = min(0.0, float(values.min()))
    return np.cumsum(values - shift + 1.0)


def select_parent_index(cumulative: np.ndarray, draw: float) -> int:
    """First index whose cumulative fitness exceeds ``draw``."""
    idx = int(np.searchsorted(cumulative, draw, side="right"))
    return min(idx, len(cumulative) - 1)


class PopulationManager:
    """
    Owns the live-agent registry and every change to its membership.

    ``agents`` maps id -> Agent; its insertion order is population order.
    """

    def __init__(
        self,
        config: SimulationConfig,
        field: SpatialField,
        graph: SocialGraph,
        rng: RandomStream,
        traits: TraitSystem = DEFAULT_TRAITS,
    ):
        self.config = config
        self.field = field
        self.graph = graph
        self.rng = rng
        self.ts = traits
        self.mode = ReproductionMode(config.reproduction_mode)
        self.space = SpaceKind(config.space)
        self.behavior = behavior_for(self.space)

        self.agents: dict[int, Agent] = {}
        self._free_ids: deque[int] = deque()
        self._next_id = 0

    # ------------------------------------------------------------------
    # Registry access
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(self.agents.values())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self.agents

    def get(self, agent_id: int | None) -> Agent | None:
        if agent_id is None:
            return None
        return self.agents.get(agent_id)

    # ------------------------------------------------------------------
    # Initial population
    # ------------------------------------------------------------------
    def populate(self, state: SimulationState) -> list[Agent]:
        """Create the founding population up to capacity."""
        cfg = self.config
        base = self.ts.base_traits(cfg)
        founders: list[Agent] = []
        for i in range(cfg.capacity):
            traits = self.ts.vary(base, cfg.initial_trait_variance, 1.0, self.rng)
            cooperator = i < cfg.initial_cooperator_fraction * cfg.capacity
            agent = self.spawn(
                traits, cooperator, self._random_position(), cfg.view_range, state,
            )
            agent.age = self.rng.integers(agent.lifespan)
            agent.fitness += self.rng.uniform(cfg.reproduction_threshold - cfg.initial_fitness)
            founders.append(agent)
        logger.info(
            "Populated %d agents (%d cooperators)", len(founders), state.cooperators,
        )
        return founders

    # ------------------------------------------------------------------
    # Birth
    # ------------------------------------------------------------------
    def spawn(
        self,
        traits: np.ndarray,
        cooperator: bool,
        position: Position,
        view_range: float,
        state: SimulationState,
    ) -> Agent:
        """Create one agent, place it, and register it everywhere."""
        cfg = self.config
        agent_id = self._allocate_id()
        lifespan = max(1, int(self.rng.gamma_around(cfg.min_lifespan, cfg.lifespan_variance, 1.0)))
        agent = Agent(
            id=agent_id,
            traits=traits,
            view_range=view_range,
            cooperator=cooperator,
            fitness=cfg.initial_fitness,
            lifespan=lifespan,
            behavior=self.behavior,
        )
        agent.heading = self.behavior.initial_heading(self.rng)
        agent.position = self.field.place(agent_id, position)
        self.graph.add_node(agent_id)
        self.agents[agent_id] = agent
        state.register_birth(agent)
        return agent

    def reproduce(self, parent: Agent, state: SimulationState) -> Agent:
        """Create one offspring of ``parent`` near it."""
        cfg = self.config
        parent.offspring += 1

        if cfg.evolve_familiarity:
            traits = self.ts.vary(parent.traits, 1.0, cfg.mutation_rate, self.rng)
        elif cfg.initial_trait_variance > 0:
            traits = self.ts.vary(self.ts.base_traits(cfg), cfg.initial_trait_variance, 1.0, self.rng)
        else:
            traits = parent.traits.copy()

        if cfg.evolve_cooperation:
            cooperator = parent.cooperator != self.rng.chance(cfg.mutation_rate)
        else:
            cooperator = self.rng.chance(cfg.initial_cooperator_fraction)

        view_range = parent.view_range
        if cfg.evolve_aggregation:
            view_range = self.rng.bounded_normal(parent.view_range, cfg.aggregation_noise, low=1.0)

        child = self.spawn(traits, cooperator, self._near(parent.position), view_range, state)
        logger.debug("Agent %d born to %d", child.id, parent.id)
        return child

    # ------------------------------------------------------------------
    # Per-tick evolution (continuous mode)
    # ------------------------------------------------------------------
    def evolve(self, agent: Agent, state: SimulationState) -> bool:
        """
        Reproduce and/or die. Returns True if the agent died.
        """
        cfg = self.config
        if agent.fitness >= cfg.reproduction_threshold:
            agent.fitness -= cfg.reproduction_threshold * cfg.reproduction_cost
            if state.population_size < cfg.capacity:
                self.reproduce(agent, state)
        if agent.age > agent.lifespan or (cfg.strong_selection and agent.fitness < 0):
            self.kill(agent, state)
            return True
        return False

    # ------------------------------------------------------------------
    # Death
    # ------------------------------------------------------------------
    def kill(self, agent: Agent, state: SimulationState) -> None:
        """Remove an agent from the registry, the field, and both graphs."""
        del self.agents[agent.id]
        self.field.remove(agent.id)
        removed = self.graph.remove_node(agent.id, state)
        state.register_death(agent)
        if self.mode is ReproductionMode.CONTINUOUS:
            self._free_ids.append(agent.id)
        logger.debug(
            "Agent %d died at age %d (fitness %.3f, %d familiar edges dropped)",
            agent.id, agent.age, agent.fitness, removed,
        )

    # ------------------------------------------------------------------
    # Single reproduction event
    # ------------------------------------------------------------------
    def replace_population(self, state: SimulationState) -> list[Agent]:
        """
        Rebuild the whole population by fitness-proportional selection.

        Parents are drawn from the current members until ``capacity``
        offspring exist; then every previous member is removed at once.
        """
        parents = list(self.agents.values())
        if not parents:
            return []
        cumulative = cumulative_fitness([a.fitness for a in parents])
        total = float(cumulative[-1])

        offspring: list[Agent] = []
        for _ in range(self.config.capacity):
            idx = select_parent_index(cumulative, self.rng.uniform(total))
            offspring.append(self.reproduce(parents[idx], state))

        for agent in parents:
            self.kill(agent, state)
        logger.info(
            "Replaced population: %d parents -> %d offspring", len(parents), len(offspring),
        )
        return offspring

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _allocate_id(self) -> int:
        if self._free_ids:
            return self._free_ids.popleft()
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    def _random_position(self) -> Position:
        dim = self.config.dimension
        if self.space is SpaceKind.GRID:
            return (self.rng.integers(dim), self.rng.integers(dim))
        return (self.rng.uniform(dim), self.rng.uniform(dim))

    def _near(self, origin: Position) -> Position:
        """Random offset of up to ``reproduction_radius`` per axis; the field wraps it."""
        radius = self.config.reproduction_radius
        if self.space is SpaceKind.GRID:
            r = int(radius)
            if r < 1:
                return origin
            return (origin[0] + self.rng.integers(r), origin[1] + self.rng.integers(r))
        return (origin[0] + self.rng.uniform(radius), origin[1] + self.rng.uniform(radius))
