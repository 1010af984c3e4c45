"""
Interaction and familiarity graphs.

Two weighted directed graphs over agent ids:

* **Interaction**: an unbounded tally of encounters. Each interaction adds 1
  to the (source, target) weight; each decay pass subtracts the source's
  decay rate and drops edges that reach 0.
* **Familiarity**: the subset of interaction edges the source actually
  remembers. An edge is promoted once its interaction weight exceeds the
  source's learning threshold, the source's out-degree never exceeds its
  memory capacity, and a full memory only admits an edge strictly heavier
  than the current weakest one, which it evicts. A familiarity edge always
  carries the same weight as its interaction edge and dies with it.

Aggregate counters (familiar edge count and total familiar weight) live on
the ``SimulationState`` passed into every mutating call.

Weakest link: the lightest familiar out-edge of each agent, cached on
``Agent.weakest_link``. Ties go to the edge admitted earliest, which is the
iteration order of the per-agent edge dict (eviction deletes the old key and
the newcomer is appended at the end).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from famsim.core.agent import Agent
    from famsim.core.state import SimulationState


class SocialGraph:
    """Interaction + familiarity graphs with bounded familiar memory."""

    def __init__(self) -> None:
        self.interaction: dict[int, dict[int, float]] = {}
        self.familiarity: dict[int, dict[int, float]] = {}
        # Reverse indices so a dying agent's incoming edges can be found
        self._interaction_in: dict[int, set[int]] = {}
        self._familiarity_in: dict[int, set[int]] = {}
        # Agents whose cached weakest link may be out of date
        self._stale: set[int] = set()

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------
    def add_node(self, agent_id: int) -> None:
        self.interaction.setdefault(agent_id, {})
        self.familiarity.setdefault(agent_id, {})
        self._interaction_in.setdefault(agent_id, set())
        self._familiarity_in.setdefault(agent_id, set())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self.interaction

    def remove_node(self, agent_id: int, state: SimulationState) -> int:
        """
        Remove an agent and every edge touching it from both graphs.

        Returns the number of familiarity edges removed (in + out); the state
        aggregates drop by exactly that count and those edges' weight.
        """
        removed = 0

        for target, weight in self.familiarity.pop(agent_id).items():
            self._familiarity_in[target].discard(agent_id)
            state.familiar_edges -= 1
            state.familiar_weight -= weight
            removed += 1
        for source in self._familiarity_in.pop(agent_id):
            weight = self.familiarity[source].pop(agent_id)
            state.familiar_edges -= 1
            state.familiar_weight -= weight
            self._stale.add(source)
            removed += 1

        for target in self.interaction.pop(agent_id):
            self._interaction_in[target].discard(agent_id)
        for source in self._interaction_in.pop(agent_id):
            del self.interaction[source][agent_id]

        self._stale.discard(agent_id)
        return removed

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def record_interaction(
        self, source: Agent, target_id: int, state: SimulationState,
    ) -> float:
        """
        Register one encounter from ``source`` to ``target_id``.

        Returns the new interaction weight. Updates or promotes the matching
        familiarity edge as described in the module docstring.
        """
        out = self.interaction[source.id]
        weight = out.get(target_id, 0.0) + 1.0
        if target_id not in out:
            self._interaction_in[target_id].add(source.id)
        out[target_id] = weight

        familiar = self.familiarity[source.id]
        if target_id in familiar:
            state.familiar_weight += weight - familiar[target_id]
            familiar[target_id] = weight
            if source.weakest_link == target_id:
                self._stale.add(source.id)
        elif weight > source.learning_threshold:
            self._promote(source, target_id, weight, state)
        return weight

    def decay(self, source: Agent, state: SimulationState) -> None:
        """
        One decay pass over ``source``'s outgoing edges.

        Interaction weights drop by the source's decay rate; edges at or below
        zero are removed together with their familiarity counterparts;
        surviving familiarity edges are synced to their interaction weight.
        The weakest-link cache is rebuilt in the same pass.
        """
        out = self.interaction[source.id]
        familiar = self.familiarity[source.id]
        rate = source.decay_rate

        for target_id in list(out):
            weight = out[target_id] - rate
            if weight <= 0:
                del out[target_id]
                self._interaction_in[target_id].discard(source.id)
                if target_id in familiar:
                    state.familiar_weight -= familiar.pop(target_id)
                    state.familiar_edges -= 1
                    self._familiarity_in[target_id].discard(source.id)
                continue
            out[target_id] = weight
            if target_id in familiar:
                state.familiar_weight += weight - familiar[target_id]
                familiar[target_id] = weight

        self._refresh_weakest(source)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def interaction_weight(self, source_id: int, target_id: int) -> float:
        return self.interaction.get(source_id, {}).get(target_id, 0.0)

    def familiarity_weight(self, source_id: int, target_id: int) -> float | None:
        return self.familiarity.get(source_id, {}).get(target_id)

    def is_familiar(self, source_id: int, target_id: int) -> bool:
        return target_id in self.familiarity.get(source_id, {})

    def out_degree(self, agent_id: int) -> int:
        return len(self.familiarity.get(agent_id, {}))

    def in_degree(self, agent_id: int) -> int:
        return len(self._familiarity_in.get(agent_id, ()))

    def familiar_targets(self, agent_id: int) -> list[int]:
        return list(self.familiarity.get(agent_id, {}))

    def familiar_edges(self) -> Iterator[tuple[int, int, float]]:
        """Every familiarity edge as (source, target, weight)."""
        for source, edges in self.familiarity.items():
            for target, weight in edges.items():
                yield source, target, weight

    def weakest_link(self, agent: Agent) -> int | None:
        """The agent's weakest familiar target, recomputed first if stale."""
        if agent.id in self._stale:
            self._refresh_weakest(agent)
        return agent.weakest_link

    def recount(self) -> tuple[int, float]:
        """Full scan of (familiar edge count, total familiar weight)."""
        count = 0
        total = 0.0
        for _, _, weight in self.familiar_edges():
            count += 1
            total += weight
        return count, total

    def local_clustering(self, agent_id: int, population_size: int) -> float:
        """
        Fraction of ordered pairs of the agent's familiar targets that are
        themselves linked, divided by the population size so that summing
        over agents yields the population average.
        """
        targets = self.familiar_targets(agent_id)
        k = len(targets)
        if k < 2 or population_size <= 0:
            return 0.0
        connections = 0
        for i in targets:
            edges = self.familiarity.get(i, {})
            for j in targets:
                if i != j and j in edges:
                    connections += 1
        return connections / (k * (k - 1) * population_size)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _promote(
        self, source: Agent, target_id: int, weight: float,
        state: SimulationState,
    ) -> None:
        familiar = self.familiarity[source.id]
        if len(familiar) + 1 <= source.memory_capacity:
            familiar[target_id] = weight
            self._familiarity_in[target_id].add(source.id)
            state.familiar_edges += 1
            state.familiar_weight += weight
            if source.id not in self._stale and (
                source.weakest_link is None
                or weight < familiar[source.weakest_link]
            ):
                source.weakest_link = target_id
            return

        weakest = self.weakest_link(source)
        if weakest is None or weight <= familiar[weakest]:
            return
        old_weight = familiar.pop(weakest)
        self._familiarity_in[weakest].discard(source.id)
        familiar[target_id] = weight
        self._familiarity_in[target_id].add(source.id)
        state.familiar_weight += weight - old_weight
        self._stale.add(source.id)

    def _refresh_weakest(self, agent: Agent) -> None:
        weakest: int | None = None
        lowest = 0.0
        for target_id, weight in self.familiarity[agent.id].items():
            if weakest is None or weight < lowest:
                weakest = target_id
                lowest = weight
        agent.weakest_link = weakest
        self._stale.discard(agent.id)
