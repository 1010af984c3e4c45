"""
Metrics Collector: derived per-tick statistics.

Turns the running aggregates on ``SimulationState`` into the quantities
experiments report: trait means per strategy, familiarity per edge, lifetime
interaction/fecundity/survival means per strategy, and (optionally) the
clustering coefficient of the familiarity graph. Reading never mutates the
simulation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from famsim.core.state import StrategyTotals

if TYPE_CHECKING:
    from famsim.core.engine import SimulationEngine, TickSnapshot


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class StrategyMetrics:
    """Means for one cooperation phenotype."""
    count: int
    familiarity_bias: float
    memory_capacity: float
    learning_threshold: float
    decay_rate: float
    cohesion: float              # mean view range
    interactions: float          # lifetime means over dead agents
    fecundity: float
    survival: float


@dataclass
class TickMetrics:
    """Extended metrics for a single tick."""
    tick: int
    population_size: int
    cooperators: int
    cooperator_fraction: float

    # Population-wide trait means
    mean_familiarity_bias: float
    mean_memory_capacity: float
    mean_learning_threshold: float
    mean_decay_rate: float

    # Familiarity graph
    familiar_edges: int
    mean_familiarity: float
    mean_familiar_share: float
    clustering: float | None

    # Per strategy
    cooperator_metrics: StrategyMetrics
    defector_metrics: StrategyMetrics


class MetricsCollector:
    """
    Collects derived metrics across ticks.

    Clustering is O(sum of squared out-degrees), so it is only computed when
    ``compute_clustering`` is set.
    """

    def __init__(self, compute_clustering: bool = False):
        self.compute_clustering = compute_clustering
        self.metrics_history: list[TickMetrics] = []

    def collect(
        self,
        engine: SimulationEngine,
        snapshot: TickSnapshot | None = None,
    ) -> TickMetrics:
        """Collect metrics for the engine's current state."""
        state = engine.state
        snapshot = snapshot or engine.history[-1]
        pop = state.population_size
        defectors, cooperators = state.strategies

        clustering = None
        if self.compute_clustering:
            clustering = float(sum(
                engine.graph.local_clustering(agent_id, pop) for agent_id in engine.agents
            ))

        metrics = TickMetrics(
            tick=snapshot.tick,
            population_size=pop,
            cooperators=state.cooperators,
            cooperator_fraction=_ratio(state.cooperators, pop),
            mean_familiarity_bias=_ratio(
                defectors.familiarity_bias + cooperators.familiarity_bias, pop),
            mean_memory_capacity=_ratio(
                defectors.memory_capacity + cooperators.memory_capacity, pop),
            mean_learning_threshold=_ratio(
                defectors.learning_threshold + cooperators.learning_threshold, pop),
            mean_decay_rate=_ratio(defectors.decay_rate + cooperators.decay_rate, pop),
            familiar_edges=state.familiar_edges,
            mean_familiarity=_ratio(state.familiar_weight, state.familiar_edges),
            mean_familiar_share=_ratio(state.familiar_share_total, pop),
            clustering=clustering,
            cooperator_metrics=self._strategy_metrics(cooperators, state.cooperators),
            defector_metrics=self._strategy_metrics(defectors, state.defectors),
        )
        self.metrics_history.append(metrics)
        return metrics

    def get_time_series(self, field_name: str) -> list[Any]:
        """Extract a time series for a specific metric field."""
        return [getattr(m, field_name) for m in self.metrics_history]

    def export(self) -> list[dict[str, Any]]:
        """Export all metrics as a list of JSON-serializable dicts."""
        return [asdict(m) for m in self.metrics_history]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _strategy_metrics(totals: StrategyTotals, count: int) -> StrategyMetrics:
        return StrategyMetrics(
            count=count,
            familiarity_bias=_ratio(totals.familiarity_bias, count),
            memory_capacity=_ratio(totals.memory_capacity, count),
            learning_threshold=_ratio(totals.learning_threshold, count),
            decay_rate=_ratio(totals.decay_rate, count),
            cohesion=_ratio(totals.view_range, count),
            interactions=_ratio(totals.interactions, totals.dead),
            fecundity=_ratio(totals.fecundity, totals.dead),
            survival=_ratio(totals.survival, totals.dead),
        )
