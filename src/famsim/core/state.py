"""
Population-wide aggregates.

One ``SimulationState`` is passed to every operation that changes the
population or the social graph, and each such operation adjusts the counters
by exactly its own contribution. Nothing here is recomputed from scratch;
telemetry reads these values without mutating them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from famsim.core.agent import Agent


@dataclass
class StrategyTotals:
    """Running sums for one cooperation phenotype."""

    # Trait sums over live agents
    familiarity_bias: float = 0.0
    memory_capacity: float = 0.0
    learning_threshold: float = 0.0
    decay_rate: float = 0.0
    view_range: float = 0.0

    # Lifetime sums over dead agents
    dead: int = 0
    interactions: int = 0
    fecundity: int = 0
    survival: int = 0

    def add_traits(self, agent: Agent, sign: float = 1.0) -> None:
        self.familiarity_bias += sign * agent.familiarity_bias
        self.memory_capacity += sign * agent.memory_capacity
        self.learning_threshold += sign * agent.learning_threshold
        self.decay_rate += sign * agent.decay_rate
        self.view_range += sign * agent.view_range

    def fold_lifetime(self, agent: Agent) -> None:
        self.dead += 1
        self.interactions += agent.interaction_count
        self.fecundity += agent.offspring
        self.survival += agent.age


@dataclass
class SimulationState:
    """Aggregate counters for one run."""

    tick: int = 0
    population_size: int = 0
    cooperators: int = 0

    # Familiarity graph aggregates
    familiar_edges: int = 0
    familiar_weight: float = 0.0
    familiar_share_total: float = 0.0

    # Index 0 = defectors, 1 = cooperators
    strategies: tuple[StrategyTotals, StrategyTotals] = field(
        default_factory=lambda: (StrategyTotals(), StrategyTotals())
    )

    # Per-tick events
    births: int = 0
    deaths: int = 0

    @property
    def defectors(self) -> int:
        return self.population_size - self.cooperators

    def begin_tick(self) -> None:
        self.births = 0
        self.deaths = 0

    def register_birth(self, agent: Agent) -> None:
        self.population_size += 1
        self.births += 1
        if agent.cooperator:
            self.cooperators += 1
        self.strategies[agent.strategy].add_traits(agent)

    def register_death(self, agent: Agent) -> None:
        self.population_size -= 1
        self.deaths += 1
        if agent.cooperator:
            self.cooperators -= 1
        self.familiar_share_total -= agent.familiar_share
        totals = self.strategies[agent.strategy]
        totals.add_traits(agent, sign=-1.0)
        totals.fold_lifetime(agent)

    def update_familiar_share(self, agent: Agent, out_degree: int) -> None:
        """Replace the agent's contribution to the mean-familiar aggregate."""
        self.familiar_share_total -= agent.familiar_share
        agent.familiar_share = (
            out_degree / self.population_size if self.population_size else 0.0
        )
        self.familiar_share_total += agent.familiar_share
