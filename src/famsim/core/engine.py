"""
Main simulation engine.

Runs the tick loop. Each tick is one synchronous pass over the population in
registry order (a snapshot taken at tick start, so newborns act from the next
tick). Every agent runs four phases:

1. Decay & prune its outgoing social edges
2. Move (and pick a partner)
3. Interact, if neither side has interacted yet this tick
4. Evolve: age, reproduce, die (continuous reproduction only)

In single-event mode the whole population is replaced every
``generation_time`` ticks after the pass. In continuous space the game is
then played only once per generation, just before selection: phase 3 is
skipped, and at the boundary the pairs met on the last tick of the
generation play (or every agent joins a public goods group).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from famsim.core.agent import Agent
from famsim.core.config import GameVariant, ReproductionMode, SimulationConfig, SpaceKind
from famsim.core.movement import MovementEngine
from famsim.core.payoff import PayoffEngine
from famsim.core.population import PopulationManager
from famsim.core.random_stream import RandomStream
from famsim.core.social_graph import SocialGraph
from famsim.core.spatial import ContinuousField, GridField, SpatialField
from famsim.core.state import SimulationState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tick metrics (lightweight snapshot)
# ---------------------------------------------------------------------------
@dataclass
class TickSnapshot:
    """Per-tick aggregate snapshot."""
    tick: int
    population_size: int
    cooperators: int
    births: int
    deaths: int

    # Familiarity graph
    familiar_edges: int
    familiar_weight: float
    mean_familiarity: float          # weight per edge
    mean_familiar_share: float       # average fraction of the population recognised

    # Individuals
    mean_fitness: float
    mean_age: float


# ---------------------------------------------------------------------------
# Simulation Engine
# ---------------------------------------------------------------------------
class SimulationEngine:
    """
    Owns every component of one run and drives the tick loop.

    Construction validates the config; the founding population is created
    lazily on the first ``step()`` (or explicitly via ``initialize()``).
    """

    def __init__(self, config: SimulationConfig):
        self.config = config.validate()
        self.rng = RandomStream(config.random_seed)
        self.state = SimulationState()

        self.field: SpatialField = (
            GridField(config.dimension) if config.space is SpaceKind.GRID
            else ContinuousField(config.dimension)
        )
        self.graph = SocialGraph()
        self.population = PopulationManager(config, self.field, self.graph, self.rng)
        self.agents = self.population.agents
        self.movement = MovementEngine(config, self.field, self.graph, self.agents, self.rng)
        self.payoff = PayoffEngine(config, self.field, self.graph, self.agents)

        self.play_at_boundary = (
            config.evolution
            and config.reproduction_mode is ReproductionMode.SINGLE_EVENT
            and config.space is SpaceKind.CONTINUOUS
        )
        self._pending_pairs: dict[int, Agent] = {}

        self.history: list[TickSnapshot] = []
        self._initialized = False
        self._extinct_logged = False

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        if self._initialized:
            return
        self.population.populate(self.state)
        self._initialized = True

    def run(self, ticks: int | None = None) -> list[TickSnapshot]:
        """Run the simulation for the given number of ticks."""
        ticks = self.config.ticks_to_run if ticks is None else ticks
        logger.info(
            "Running '%s' for %d ticks (%s space, %s game, seed=%s)",
            self.config.experiment_name, ticks, self.config.space.value,
            self.config.game.value, self.config.random_seed,
        )
        for _ in range(ticks):
            self.step()
        if self.history:
            final = self.history[-1]
            logger.info(
                "Finished at tick %d: population %d, cooperators %d, familiar edges %d",
                final.tick, final.population_size, final.cooperators, final.familiar_edges,
            )
        return self.history

    def step(self) -> TickSnapshot:
        """Advance one tick and return its snapshot."""
        self.initialize()
        cfg = self.config
        self.state.begin_tick()

        for agent in self.agents.values():
            agent.tick_interactions = 0
        self._pending_pairs.clear()

        for agent in list(self.agents.values()):
            if self.agents.get(agent.id) is not agent:
                continue
            self._step_agent(agent)

        if (
            cfg.evolution
            and cfg.reproduction_mode is ReproductionMode.SINGLE_EVENT
            and (self.state.tick + 1) % cfg.generation_time == 0
        ):
            self._reproduction_event()

        snapshot = self._build_snapshot()
        self.history.append(snapshot)
        self.state.tick += 1

        if snapshot.population_size == 0 and not self._extinct_logged:
            logger.warning("Population extinct at tick %d", snapshot.tick)
            self._extinct_logged = True
        logger.debug(
            "Tick %d: pop=%d births=%d deaths=%d edges=%d",
            snapshot.tick, snapshot.population_size, snapshot.births,
            snapshot.deaths, snapshot.familiar_edges,
        )
        return snapshot

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def _step_agent(self, agent) -> None:
        cfg = self.config

        # === Phase 1: Decay & prune ===
        if cfg.use_network:
            self.graph.decay(agent, self.state)
            self.state.update_familiar_share(agent, self.graph.out_degree(agent.id))

        # === Phase 2: Move ===
        partner = self.movement.step(agent)

        # === Phase 3: Interact ===
        if self.play_at_boundary:
            if partner is not None:
                self._pending_pairs[agent.id] = partner
        elif partner is not None and not agent.has_interacted and not partner.has_interacted:
            self.payoff.interact(agent, partner, self.state)

        agent.fitness += cfg.background_fitness

        # === Phase 4: Evolve ===
        if cfg.evolution and cfg.reproduction_mode is ReproductionMode.CONTINUOUS:
            agent.age += 1
            self.population.evolve(agent, self.state)

    def _reproduction_event(self) -> None:
        """Replace the whole population (single-event mode)."""
        if self.config.game is GameVariant.PUBLIC_GOODS:
            for agent in list(self.agents.values()):
                if not agent.has_interacted:
                    self.payoff.public_goods(agent)
        elif self.play_at_boundary:
            for agent_id, partner in self._pending_pairs.items():
                agent = self.agents[agent_id]
                if not agent.has_interacted and not partner.has_interacted:
                    self.payoff.interact(agent, partner, self.state)
        self.population.replace_population(self.state)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def _build_snapshot(self) -> TickSnapshot:
        s = self.state
        pop = list(self.agents.values())
        return TickSnapshot(
            tick=s.tick,
            population_size=s.population_size,
            cooperators=s.cooperators,
            births=s.births,
            deaths=s.deaths,
            familiar_edges=s.familiar_edges,
            familiar_weight=s.familiar_weight,
            mean_familiarity=s.familiar_weight / s.familiar_edges if s.familiar_edges else 0.0,
            mean_familiar_share=s.familiar_share_total / s.population_size if s.population_size else 0.0,
            mean_fitness=float(np.mean([a.fitness for a in pop])) if pop else 0.0,
            mean_age=float(np.mean([a.age for a in pop])) if pop else 0.0,
        )
