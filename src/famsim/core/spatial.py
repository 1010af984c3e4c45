"""
Toroidal spatial fields.

Two geometries share one interface:

* ``GridField``: integer cells, several occupants allowed per cell,
  Chebyshev (Moore) neighbourhoods.
* ``ContinuousField``: real-valued plane, Euclidean neighbourhoods.

Both wrap at the edges: a coordinate ``v`` is stored as ``wrap(v, dim)`` and
distances use the minimal signed delta per axis. Agents are bucketed into
unit cells so that placement and movement touch at most two buckets, and a
range query only scans the cells its radius covers.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

Position = tuple[float, float]


def wrap(value: float, dim: float) -> float:
    """Map ``value`` onto [0, dim) toroidally."""
    v = ((value % dim) + dim) % dim
    # float rounding can land exactly on dim for tiny negative values
    return v if v < dim else 0.0


def toroidal_delta(a: float, b: float, dim: float) -> float:
    """Minimal signed delta from ``a`` to ``b`` on a ring of length ``dim``."""
    d = b - a
    half = dim / 2.0
    if d > half:
        d -= dim
    elif d < -half:
        d += dim
    return d


class SpatialField(ABC):
    """Square toroidal space of side ``dimension`` holding agent ids."""

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension: int = dimension
        self._positions: dict[int, Position] = {}
        self._buckets: dict[tuple[int, int], list[int]] = {}

    # ---- Geometry hooks ----

    @abstractmethod
    def normalize(self, position: Position) -> Position:
        """Wrap (and for grids, truncate) a raw position into the field."""

    @abstractmethod
    def _within(self, dx: float, dy: float, radius: float) -> bool:
        """Whether a toroidal delta lies inside ``radius`` for this metric."""

    # ---- Placement ----

    def place(self, agent_id: int, position: Position) -> Position:
        """Put an agent at ``position`` (moving it if already present)."""
        pos = self.normalize(position)
        old = self._positions.get(agent_id)
        if old is not None:
            old_cell = self._cell(old)
            if old_cell == self._cell(pos):
                self._positions[agent_id] = pos
                return pos
            self._detach(agent_id, old_cell)
        self._positions[agent_id] = pos
        self._buckets.setdefault(self._cell(pos), []).append(agent_id)
        return pos

    move = place

    def remove(self, agent_id: int) -> None:
        """Take an agent out of the field. Raises KeyError if absent."""
        pos = self._positions.pop(agent_id)
        self._detach(agent_id, self._cell(pos))

    def position_of(self, agent_id: int) -> Position:
        return self._positions[agent_id]

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    # ---- Distance ----

    def delta(self, a: Position, b: Position) -> Position:
        """Minimal signed per-axis delta from ``a`` to ``b``."""
        return (
            toroidal_delta(a[0], b[0], self.dimension),
            toroidal_delta(a[1], b[1], self.dimension),
        )

    def distance(self, a: Position, b: Position) -> float:
        """Euclidean length of the toroidal delta."""
        dx, dy = self.delta(a, b)
        return math.hypot(dx, dy)

    # ---- Queries ----

    def neighbors_within(
        self,
        position: Position,
        radius: float,
        exclude: int | None = None,
    ) -> list[int]:
        """
        Agent ids within ``radius`` of ``position``, ordered by id.

        ``exclude`` (usually the querying agent) is left out of the result.
        """
        if radius < 0:
            return []
        x, y = position
        found: list[int] = []
        for cell in self._cells_covering(x, y, radius):
            for agent_id in self._buckets.get(cell, ()):
                if agent_id == exclude:
                    continue
                dx, dy = self.delta(position, self._positions[agent_id])
                if self._within(dx, dy, radius):
                    found.append(agent_id)
        found.sort()
        return found

    # ---- Internals ----

    def _cell(self, pos: Position) -> tuple[int, int]:
        return (int(pos[0]), int(pos[1]))

    def _detach(self, agent_id: int, cell: tuple[int, int]) -> None:
        bucket = self._buckets[cell]
        bucket.remove(agent_id)
        if not bucket:
            del self._buckets[cell]

    def _axis_cells(self, v: float, radius: float) -> range | list[int]:
        lo = math.floor(v - radius)
        hi = math.floor(v + radius)
        if hi - lo + 1 >= self.dimension:
            return range(self.dimension)
        return [int(wrap(c, self.dimension)) for c in range(lo, hi + 1)]

    def _cells_covering(self, x: float, y: float, radius: float):
        xs = self._axis_cells(x, radius)
        ys = self._axis_cells(y, radius)
        for cx in xs:
            for cy in ys:
                yield (cx, cy)


class GridField(SpatialField):
    """Discrete toroidal grid with Moore neighbourhoods."""

    def normalize(self, position: Position) -> tuple[int, int]:
        return (
            int(wrap(int(position[0]), self.dimension)),
            int(wrap(int(position[1]), self.dimension)),
        )

    def _within(self, dx: float, dy: float, radius: float) -> bool:
        return max(abs(dx), abs(dy)) <= radius

    def occupants(self, position: Position) -> list[int]:
        """Ids of agents in the cell at ``position``."""
        return list(self._buckets.get(self._cell(self.normalize(position)), ()))

    def is_occupied(self, position: Position, ignore: int | None = None) -> bool:
        return any(a != ignore for a in self.occupants(position))


class ContinuousField(SpatialField):
    """Continuous toroidal plane with Euclidean neighbourhoods."""

    def normalize(self, position: Position) -> Position:
        return (
            wrap(float(position[0]), self.dimension),
            wrap(float(position[1]), self.dimension),
        )

    def _within(self, dx: float, dy: float, radius: float) -> bool:
        return dx * dx + dy * dy <= radius * radius
