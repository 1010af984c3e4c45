"""
Movement and partner choice.

Each agent carries a ``SpatialBehavior`` picked at construction to match the
space it lives in:

* ``GridBehavior``: compass moves on the grid. Every axis is decided by a
  signed vote over neighbours' headings (flocking), the direction toward them
  (aggregation), and the agent's own last heading (persistence). Votes from
  familiar neighbours are weighted by the agent's familiarity bias, votes from
  strangers by one minus it.
* ``ContinuousBehavior``: headed motion on the plane: repulsion from anything
  closer than the repulsion range, else a blend of aggregation, flocking and
  persistence, else straight ahead; Gaussian noise; bounded turning.

Both return the agent's interaction partner for the tick: the nearest
neighbour seen, or a uniformly random agent in interaction range when
``random_interaction`` is configured.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from famsim.core.config import SpaceKind

if TYPE_CHECKING:
    from famsim.core.agent import Agent
    from famsim.core.config import SimulationConfig
    from famsim.core.random_stream import RandomStream
    from famsim.core.social_graph import SocialGraph
    from famsim.core.spatial import GridField, SpatialField

Vector = tuple[float, float]

COMPASS: list[Vector] = [
    (1, 1), (1, 0), (0, 1), (-1, -1), (-1, 0), (0, -1), (1, -1), (-1, 1),
]


def sign(v: float) -> int:
    if v > 0:
        return 1
    if v < 0:
        return -1
    return 0


def normalize(v: Vector) -> Vector:
    """Unit vector along ``v``; the zero vector stays zero."""
    mag = math.hypot(v[0], v[1])
    if mag == 0:
        return (0.0, 0.0)
    return (v[0] / mag, v[1] / mag)


def clamp_turn(old_angle: float, new_angle: float, max_turn: float) -> float:
    """Limit the turn from ``old_angle`` to ``max_turn`` along the shorter arc."""
    turn = (new_angle - old_angle + math.pi) % (2 * math.pi) - math.pi
    if abs(turn) > max_turn:
        turn = math.copysign(max_turn, turn)
    return old_angle + turn


class MovementEngine:
    """Moves agents through the field using their behaviour capability."""

    def __init__(
        self,
        config: SimulationConfig,
        field: SpatialField,
        graph: SocialGraph,
        agents: dict[int, Agent],
        rng: RandomStream,
    ):
        self.config = config
        self.field = field
        self.graph = graph
        self.agents = agents
        self.rng = rng

    def step(self, agent: Agent) -> Agent | None:
        """Move ``agent`` one tick and return its chosen partner, if any."""
        return agent.behavior.move(agent, self)

    def bias(self, agent: Agent, other_id: int) -> float:
        """Weight of a neighbour's influence given familiarity."""
        if self.config.use_network and self.graph.is_familiar(agent.id, other_id):
            return agent.familiarity_bias
        return 1.0 - agent.familiarity_bias

    def choose_partner(self, agent: Agent, nearest: Agent | None) -> Agent | None:
        """Nearest neighbour, or a random one in interaction range."""
        if not self.config.random_interaction:
            return nearest
        candidates = self.field.neighbors_within(
            agent.position, self.config.interact_range, exclude=agent.id,
        )
        if not candidates:
            return None
        return self.agents[candidates[self.rng.integers(len(candidates))]]


class SpatialBehavior(ABC):
    """How one kind of agent moves and picks partners."""

    @abstractmethod
    def initial_heading(self, rng: RandomStream) -> Vector:
        """Heading for a newly created agent."""

    @abstractmethod
    def move(self, agent: Agent, engine: MovementEngine) -> Agent | None:
        """Update heading and position; return the interaction partner."""


class GridBehavior(SpatialBehavior):
    """Compass movement on a toroidal grid."""

    def initial_heading(self, rng: RandomStream) -> Vector:
        return (rng.integers(3) - 1, rng.integers(3) - 1)

    def move(self, agent: Agent, engine: MovementEngine) -> Agent | None:
        cfg = engine.config
        rng = engine.rng
        field: GridField = engine.field  # type: ignore[assignment]

        neighbors = field.neighbors_within(agent.position, agent.view_range, exclude=agent.id)
        nearest: Agent | None = None
        near_dist = 0.0

        if rng.chance(cfg.error_rate):
            heading = COMPASS[rng.integers(len(COMPASS))]
            for nid in neighbors:
                other = engine.agents[nid]
                dist = field.distance(agent.position, other.position)
                if nearest is None or dist < near_dist:
                    nearest, near_dist = other, dist
        else:
            aggregate_weight = 1.0 - cfg.flock_weight - cfg.persist_weight
            vote = [0.0, 0.0]
            for nid in neighbors:
                other = engine.agents[nid]
                delta = field.delta(agent.position, other.position)
                dist = math.hypot(delta[0], delta[1])
                if nearest is None or dist < near_dist:
                    nearest, near_dist = other, dist
                b = engine.bias(agent, nid)
                for axis in (0, 1):
                    vote[axis] += b * cfg.flock_weight * sign(other.heading[axis])
                    vote[axis] += b * aggregate_weight * sign(delta[axis])
            for axis in (0, 1):
                vote[axis] += cfg.persist_weight * sign(agent.heading[axis])
            heading = (sign(vote[0]), sign(vote[1]))
            if heading == (0, 0) and cfg.always_move:
                heading = COMPASS[rng.integers(len(COMPASS))]

        partner = engine.choose_partner(agent, nearest)

        agent.heading = heading
        if heading != (0, 0):
            self._step_to(agent, heading, field, engine)
        return partner

    def _step_to(self, agent: Agent, heading: Vector,
                 field: GridField, engine: MovementEngine) -> None:
        x, y = agent.position
        target = (x + heading[0], y + heading[1])
        if field.is_occupied(target, ignore=agent.id):
            if not engine.config.bounce_on_collision:
                return
            heading = COMPASS[engine.rng.integers(len(COMPASS))]
            agent.heading = heading
            target = (x + heading[0], y + heading[1])
            if field.is_occupied(target, ignore=agent.id):
                return
        agent.position = field.move(agent.id, target)


class ContinuousBehavior(SpatialBehavior):
    """Headed motion on a continuous toroidal plane."""

    def initial_heading(self, rng: RandomStream) -> Vector:
        angle = rng.angle()
        return (math.cos(angle), math.sin(angle))

    def move(self, agent: Agent, engine: MovementEngine) -> Agent | None:
        cfg = engine.config
        rng = engine.rng
        field = engine.field
        pos = agent.position

        nearest: Agent | None = None
        near_dist = 0.0

        repulse = field.neighbors_within(pos, cfg.repulse_range, exclude=agent.id)
        if repulse:
            away = [0.0, 0.0]
            for nid in repulse:
                other = engine.agents[nid]
                dx, dy = field.delta(pos, other.position)
                dist = math.hypot(dx, dy)
                if nearest is None or dist < near_dist:
                    nearest, near_dist = other, dist
                if dist > 0:
                    away[0] -= dx / dist
                    away[1] -= dy / dist
            direction = normalize((away[0], away[1]))
        else:
            approach = field.neighbors_within(pos, agent.view_range, exclude=agent.id)
            if approach:
                agg = [0.0, 0.0]
                flock = [0.0, 0.0]
                for nid in approach:
                    other = engine.agents[nid]
                    b = engine.bias(agent, nid)
                    dx, dy = field.delta(pos, other.position)
                    dist = math.hypot(dx, dy)
                    if nearest is None or dist < near_dist:
                        nearest, near_dist = other, dist
                    if dist > 0:
                        agg[0] += b * dx / dist
                        agg[1] += b * dy / dist
                    flock[0] += b * other.heading[0]
                    flock[1] += b * other.heading[1]
                agg_dir = normalize((agg[0], agg[1]))
                flock_dir = normalize((flock[0], flock[1]))
                p, f = cfg.persist_weight, cfg.flock_weight
                direction = (
                    (1 - p) * (1 - f) * agg_dir[0] + (1 - p) * f * flock_dir[0] + p * agent.heading[0],
                    (1 - p) * (1 - f) * agg_dir[1] + (1 - p) * f * flock_dir[1] + p * agent.heading[1],
                )
            else:
                direction = agent.heading

        direction = (
            direction[0] + rng.gaussian(cfg.error_rate),
            direction[1] + rng.gaussian(cfg.error_rate),
        )

        partner = engine.choose_partner(agent, nearest)

        old_angle = math.atan2(agent.heading[1], agent.heading[0])
        if direction == (0.0, 0.0):
            new_angle = old_angle
        else:
            new_angle = math.atan2(direction[1], direction[0])
        max_turn = math.radians(cfg.max_rotation) * cfg.step_size
        angle = clamp_turn(old_angle, new_angle, max_turn)

        agent.heading = (math.cos(angle), math.sin(angle))
        agent.position = field.move(agent.id, (
            pos[0] + cfg.step_size * agent.heading[0],
            pos[1] + cfg.step_size * agent.heading[1],
        ))
        return partner


_BEHAVIORS: dict[SpaceKind, SpatialBehavior] = {
    SpaceKind.GRID: GridBehavior(),
    SpaceKind.CONTINUOUS: ContinuousBehavior(),
}


def behavior_for(space: SpaceKind) -> SpatialBehavior:
    """The movement capability for agents living in ``space``."""
    return _BEHAVIORS[SpaceKind(space)]
