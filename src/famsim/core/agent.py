"""
Core agent dataclass for famsim.

Agents carry a social-memory trait vector, a cooperation phenotype, spatial
state, and the per-tick and lifetime counters the population aggregates are
built from. Other agents are referenced by id only; resolve them through the
population registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from famsim.core.traits import DEFAULT_TRAITS

if TYPE_CHECKING:
    from famsim.core.movement import SpatialBehavior

_TS = DEFAULT_TRAITS


@dataclass
class Agent:
    """A simulated individual."""

    # === Identity ===
    id: int

    # === Social memory traits (see famsim.core.traits) ===
    traits: np.ndarray

    # === Spatial state ===
    position: tuple[float, float] = (0.0, 0.0)
    heading: tuple[float, float] = (0.0, 0.0)
    view_range: float = 0.0
    behavior: SpatialBehavior | None = field(default=None, repr=False, compare=False)

    # === Phenotype & life history ===
    cooperator: bool = False
    fitness: float = 0.0
    age: int = 0
    lifespan: int = 1
    offspring: int = 0

    # === Interaction bookkeeping ===
    tick_interactions: int = 0          # reset every tick
    interaction_count: int = 0          # ticks on which this agent interacted
    last_partner: int | None = None

    # === Social graph caches ===
    weakest_link: int | None = None     # target id of the lightest familiar edge
    familiar_share: float = 0.0         # out-degree / population size

    # ------------------------------------------------------------------
    # Named trait access
    # ------------------------------------------------------------------
    @property
    def familiarity_bias(self) -> float:
        return float(self.traits[_TS.FAMILIARITY_BIAS])

    @property
    def memory_capacity(self) -> float:
        return float(self.traits[_TS.MEMORY_CAPACITY])

    @property
    def learning_threshold(self) -> float:
        return float(self.traits[_TS.LEARNING_THRESHOLD])

    @property
    def decay_rate(self) -> float:
        return float(self.traits[_TS.DECAY_RATE])

    @property
    def strategy(self) -> int:
        """1 for cooperators, 0 for defectors; indexes per-strategy totals."""
        return 1 if self.cooperator else 0

    @property
    def has_interacted(self) -> bool:
        return self.tick_interactions > 0

    def mark_interacted(self) -> None:
        """Count an interaction this tick (and the tick itself, once)."""
        if self.tick_interactions == 0:
            self.interaction_count += 1
        self.tick_interactions += 1

    def __repr__(self) -> str:
        role = "cooperator" if self.cooperator else "defector"
        return (
            f"Agent(id={self.id}, pos=({self.position[0]:.2f}, {self.position[1]:.2f}), "
            f"fitness={self.fitness:.2f}, age={self.age}/{self.lifespan}, {role})"
        )
