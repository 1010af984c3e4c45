"""
Master configuration for famsim.

ALL tunable parameters live here. Nothing in the simulation is hardcoded.
Values are absolute; ``ProportionalSettings`` + ``SimulationConfig.resolve``
turn fractions of space/lifespan/thresholds into absolute values.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


class InvalidConfiguration(ValueError):
    """Raised when a parameter set cannot drive a simulation."""


class SpaceKind(str, Enum):
    """Geometry of the space agents live in."""
    GRID = "grid"
    CONTINUOUS = "continuous"


class GameVariant(str, Enum):
    """Payoff rule applied when agents interact."""
    PAIRWISE_COOPERATION = "pairwise_cooperation"
    FAMILIARITY = "familiarity"
    INTERACTION_COUNT = "interaction_count"
    PUBLIC_GOODS = "public_goods"


class ReproductionMode(str, Enum):
    """How the population turns over."""
    CONTINUOUS = "continuous"        # agents reproduce and die individually
    SINGLE_EVENT = "single_event"    # whole population replaced every generation_time ticks


_ENUM_FIELDS: dict[str, type[Enum]] = {
    "space": SpaceKind,
    "game": GameVariant,
    "reproduction_mode": ReproductionMode,
}

_PROBABILITIES = (
    "initial_cooperator_fraction",
    "familiarity_bias",
    "mutation_rate",
    "error_rate",
)


@dataclass
class SimulationConfig:
    """
    Master configuration: every knob of the model.

    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison,
    and ``validate()`` before handing the config to an engine.
    """

    # === Run identity ===
    experiment_name: str = "default"
    random_seed: int | None = None
    ticks_to_run: int = 1000

    # === Space ===
    space: SpaceKind = SpaceKind.CONTINUOUS
    dimension: int = 100

    # === Population ===
    capacity: int = 100
    initial_cooperator_fraction: float = 0.5

    # === Game ===
    game: GameVariant = GameVariant.PAIRWISE_COOPERATION
    cost: float = 0.1
    benefit: float = 1.0
    aggregation_cost: float = 0.0
    background_fitness: float = 0.0

    # === Evolution ===
    evolution: bool = True
    reproduction_mode: ReproductionMode = ReproductionMode.CONTINUOUS
    generation_time: int = 100          # ticks between single reproduction events
    evolve_familiarity: bool = True
    evolve_cooperation: bool = False
    evolve_aggregation: bool = False
    strong_selection: bool = False
    mutation_rate: float = 0.01
    aggregation_noise: float = 1.0
    initial_trait_variance: float = 0.0

    # === Life history ===
    min_lifespan: float = 100.0
    lifespan_variance: float = 0.5      # squared coefficient of variation of the gamma draw
    initial_fitness: float = 0.0
    reproduction_threshold: float = 10.0
    reproduction_cost: float = 0.5      # proportion of the threshold paid per attempt
    reproduction_radius: float = 2.0

    # === Social memory (base trait values) ===
    use_network: bool = True
    familiarity_bias: float = 0.5
    memory_capacity: float = 10.0
    learning_threshold: float = 2.0
    decay_rate: float = 0.1

    # === Movement ===
    view_range: float = 10.0
    repulse_range: float = 1.0
    interact_range: float = 2.0
    random_interaction: bool = False
    step_size: float = 1.0
    max_rotation: float = 30.0          # degrees per unit of step size
    error_rate: float = 0.1
    flock_weight: float = 0.3
    persist_weight: float = 0.3
    bounce_on_collision: bool = True
    always_move: bool = False

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> SimulationConfig:
        """Raise InvalidConfiguration if any parameter is out of range."""
        for name, enum_type in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                try:
                    setattr(self, name, enum_type(value))
                except ValueError:
                    raise InvalidConfiguration(
                        f"Unknown {name} '{value}'. Choose from: "
                        f"{[m.value for m in enum_type]}"
                    ) from None

        if self.dimension <= 0:
            raise InvalidConfiguration("dimension must be positive")
        if self.capacity < 0:
            raise InvalidConfiguration("capacity must not be negative")
        if self.step_size <= 0:
            raise InvalidConfiguration("step_size must be positive")
        if self.generation_time < 1:
            raise InvalidConfiguration("generation_time must be at least 1")
        if self.ticks_to_run < 0:
            raise InvalidConfiguration("ticks_to_run must not be negative")

        for name in _PROBABILITIES:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfiguration(f"{name} must lie in [0, 1], got {value}")

        for name in (
            "memory_capacity", "learning_threshold", "decay_rate",
            "cost", "benefit", "aggregation_cost",
            "min_lifespan", "lifespan_variance", "reproduction_threshold",
            "reproduction_cost", "reproduction_radius",
            "view_range", "repulse_range", "interact_range",
            "max_rotation", "initial_trait_variance", "aggregation_noise",
        ):
            value = getattr(self, name)
            if value < 0:
                raise InvalidConfiguration(f"{name} must not be negative, got {value}")

        return self

    # ------------------------------------------------------------------
    # Proportional resolution
    # ------------------------------------------------------------------
    def resolve(
        self,
        settings: ProportionalSettings,
        rng: np.random.Generator | None = None,
    ) -> SimulationConfig:
        """Return a copy with proportional settings turned into absolute values."""
        s = settings
        cfg = replace(self)

        if s.density > 0:
            cfg.capacity = int(cfg.dimension * cfg.dimension * s.density)
        if s.view_fraction > 0:
            cfg.view_range = cfg.dimension * s.view_fraction
        if s.repulse_fraction > 0:
            cfg.repulse_range = cfg.view_range * s.repulse_fraction
        if s.interact_fraction > 0:
            cfg.interact_range = cfg.dimension * s.interact_fraction
        if s.cost_benefit_ratio > 0 and s.fitness_scale > 0:
            cfg.benefit = s.fitness_scale * cfg.reproduction_threshold
            cfg.cost = cfg.benefit * s.cost_benefit_ratio
            if s.other_fitness_fraction != 0:
                cfg.background_fitness = cfg.benefit * s.other_fitness_fraction
                net = cfg.benefit - cfg.cost
                if net + cfg.background_fitness < 0:
                    rng = rng or np.random.default_rng(cfg.random_seed)
                    cfg.background_fitness = -float(rng.random()) * net
                    logger.warning(
                        "Background fitness made net payoff negative; redrawn as %.4f",
                        cfg.background_fitness,
                    )
        if s.memory_fraction > 0:
            cfg.memory_capacity = s.memory_fraction * cfg.capacity
        if s.learning_fraction > 0:
            cfg.learning_threshold = (
                s.learning_fraction * (1.0 - cfg.decay_rate) * cfg.min_lifespan
            )
        if s.initial_fitness_fraction > 0:
            cfg.initial_fitness = cfg.reproduction_threshold * s.initial_fitness_fraction
        if s.reproduction_distance_fraction > 0:
            cfg.reproduction_radius = s.reproduction_distance_fraction * cfg.dimension

        return cfg

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {}
        for f in fields(self):
            v = getattr(self, f.name)
            d[f.name] = v.value if isinstance(v, Enum) else v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SimulationConfig:
        """Deserialize from a dict."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in d.items() if k in known}
        for name, enum_type in _ENUM_FIELDS.items():
            if name in kwargs:
                kwargs[name] = enum_type(kwargs[name])
        return cls(**kwargs)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, s: str) -> SimulationConfig:
        return cls.from_dict(json.loads(s))

    def diff(self, other: SimulationConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        mine, theirs = self.to_dict(), other.to_dict()
        for k, v1 in mine.items():
            v2 = theirs[k]
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs


@dataclass
class ProportionalSettings:
    """
    Parameters expressed relative to other parameters.

    A value of 0 leaves the corresponding absolute parameter untouched.
    """

    density: float = 0.0                     # capacity as a fraction of cells
    view_fraction: float = 0.0               # view range as a fraction of dimension
    repulse_fraction: float = 0.0            # repulsion range as a fraction of view range
    interact_fraction: float = 0.0           # interaction range as a fraction of dimension
    cost_benefit_ratio: float = 0.0
    fitness_scale: float = 0.0               # benefit as a fraction of the reproduction threshold
    other_fitness_fraction: float = 0.0      # background fitness as a fraction of benefit
    memory_fraction: float = 0.0             # memory capacity as a fraction of capacity
    learning_fraction: float = 0.0           # learning threshold as a fraction of decayed lifespan
    initial_fitness_fraction: float = 0.0
    reproduction_distance_fraction: float = 0.0
