"""
Payoffs for interacting agents.

One ``GameVariant`` is active for a whole run:

* PAIRWISE_COOPERATION: cooperators pay ``cost`` and hand ``benefit`` to
  their partner, each direction checked on its own. When aggregation is
  evolving, both players also pay ``aggregation_cost * view_range**2``.
* FAMILIARITY: each player gains the weight of its familiarity edge toward
  the other, if it has one.
* INTERACTION_COUNT: both players gain 1.
* PUBLIC_GOODS: a flood-fill through interaction range from the initiator
  collects a group; cooperators pay ``cost`` and everyone shares ``benefit``
  in proportion to the cooperators among their groupmates.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from famsim.core.config import GameVariant

if TYPE_CHECKING:
    from famsim.core.agent import Agent
    from famsim.core.config import SimulationConfig
    from famsim.core.social_graph import SocialGraph
    from famsim.core.spatial import SpatialField
    from famsim.core.state import SimulationState


class PayoffEngine:
    """Applies the configured game to interacting agents."""

    def __init__(
        self,
        config: SimulationConfig,
        field: SpatialField,
        graph: SocialGraph,
        agents: dict[int, Agent],
    ):
        self.config = config
        self.field = field
        self.graph = graph
        self.agents = agents
        self.game = GameVariant(config.game)

    def interact(self, agent: Agent, partner: Agent, state: SimulationState) -> None:
        """
        Play one interaction between ``agent`` and ``partner``.

        Records the encounter in the social graph both ways, links the two as
        each other's last partner, then applies the game payoff. Both players
        count as having interacted this tick. In the public goods game so does
        everyone the group fill reaches, and a partner outside the fill is
        still marked so it cannot play again this tick.
        """
        if self.config.use_network:
            self.graph.record_interaction(agent, partner.id, state)
            self.graph.record_interaction(partner, agent.id, state)
        agent.last_partner = partner.id
        partner.last_partner = agent.id

        if self.game is GameVariant.PAIRWISE_COOPERATION:
            self._pairwise_cooperation(agent, partner)
        elif self.game is GameVariant.FAMILIARITY:
            self._familiarity(agent, partner)
        elif self.game is GameVariant.INTERACTION_COUNT:
            agent.fitness += 1.0
            partner.fitness += 1.0
        elif self.game is GameVariant.PUBLIC_GOODS:
            self.public_goods(agent)
            if not partner.has_interacted:
                partner.mark_interacted()
            return
        agent.mark_interacted()
        partner.mark_interacted()

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------
    def _pairwise_cooperation(self, agent: Agent, partner: Agent) -> None:
        cfg = self.config
        if agent.cooperator:
            agent.fitness -= cfg.cost
            partner.fitness += cfg.benefit
        if partner.cooperator:
            partner.fitness -= cfg.cost
            agent.fitness += cfg.benefit
        if cfg.evolve_aggregation:
            agent.fitness -= self.aggregation_cost(agent)
            partner.fitness -= self.aggregation_cost(partner)

    def _familiarity(self, agent: Agent, partner: Agent) -> None:
        forward = self.graph.familiarity_weight(agent.id, partner.id)
        if forward is not None:
            agent.fitness += forward
        backward = self.graph.familiarity_weight(partner.id, agent.id)
        if backward is not None:
            partner.fitness += backward

    def public_goods(self, initiator: Agent) -> list[Agent]:
        """
        Flood-fill the initiator's group and pay out the public good.

        An agent joins the group when it lies within interaction range of a
        member and has not interacted yet this tick; joining counts as its
        interaction, so nobody is visited twice in one tick and the fill ends
        after at most population-size steps. Returns the group in visit order.
        """
        cfg = self.config
        initiator.mark_interacted()
        queue: deque[Agent] = deque([initiator])
        group: list[Agent] = []
        cooperators = 0

        while queue:
            member = queue.popleft()
            group.append(member)
            if member.cooperator:
                cooperators += 1
            for nid in self.field.neighbors_within(
                member.position, cfg.interact_range, exclude=member.id,
            ):
                other = self.agents[nid]
                if other.tick_interactions == 0:
                    other.mark_interacted()
                    queue.append(other)

        size = len(group)
        for member in group:
            own = 0
            if member.cooperator:
                member.fitness -= cfg.cost
                own = 1
            if size > 1:
                member.fitness += cfg.benefit * (cooperators - own) / (size - 1)
            member.fitness -= self.aggregation_cost(member)
        return group

    def aggregation_cost(self, agent: Agent) -> float:
        return self.config.aggregation_cost * agent.view_range ** 2
