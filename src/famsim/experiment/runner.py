"""
Batch runs over ``SimulationConfig`` variants.

A run steps one engine to completion and keeps its snapshots, optional
``TickMetrics`` and a few end-of-run summaries. Comparisons, sweeps and
seed batches are built from runs executed one after another.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

import numpy as np

from famsim.core.config import SimulationConfig
from famsim.core.engine import SimulationEngine, TickSnapshot
from famsim.metrics.collector import MetricsCollector, TickMetrics


@dataclass
class ExperimentResult:
    config: SimulationConfig
    history: list[TickSnapshot]
    metrics: list[TickMetrics]
    final_population_size: int
    final_cooperator_fraction: float
    mean_familiarity: float        # over ticks with at least one familiar edge


@dataclass
class ComparisonResult:
    results: dict[str, ExperimentResult]
    config_diffs: dict[str, Any]   # "<first>_vs_<other>" -> SimulationConfig.diff


def _summarize(config: SimulationConfig, history: list[TickSnapshot],
               metrics: list[TickMetrics]) -> ExperimentResult:
    pop, coop = 0, 0.0
    if history:
        pop = history[-1].population_size
        coop = history[-1].cooperators / pop if pop else 0.0
    familiar = [s.mean_familiarity for s in history if s.familiar_edges > 0]
    return ExperimentResult(
        config=config,
        history=history,
        metrics=metrics,
        final_population_size=pop,
        final_cooperator_fraction=coop,
        mean_familiarity=float(np.mean(familiar)) if familiar else 0.0,
    )


class ExperimentRunner:
    """Runs configs in this process; clustering is opt-in as in the collector."""

    def __init__(self, compute_clustering: bool = False):
        self.compute_clustering = compute_clustering

    def run_experiment(
        self,
        config: SimulationConfig,
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> ExperimentResult:
        engine = SimulationEngine(config)
        collector = MetricsCollector(self.compute_clustering)
        for _ in range(config.ticks_to_run if ticks is None else ticks):
            snapshot = engine.step()
            if collect_metrics:
                collector.collect(engine, snapshot)
        return _summarize(config, engine.history, collector.metrics_history)

    def compare_experiments(
        self,
        configs: dict[str, SimulationConfig],
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> ComparisonResult:
        """Run each named config; diffs are taken against the first one."""
        results = {
            name: self.run_experiment(config, ticks, collect_metrics)
            for name, config in configs.items()
        }
        diffs: dict[str, Any] = {}
        if configs:
            first, *others = configs
            diffs = {
                f"{first}_vs_{name}": configs[first].diff(configs[name])
                for name in others
            }
        return ComparisonResult(results=results, config_diffs=diffs)

    def run_ab_test(
        self,
        config_a: SimulationConfig,
        config_b: SimulationConfig,
        label_a: str = "A",
        label_b: str = "B",
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> ComparisonResult:
        return self.compare_experiments(
            {label_a: config_a, label_b: config_b}, ticks, collect_metrics,
        )

    def run_parameter_sweep(
        self,
        base_config: SimulationConfig,
        param_name: str,
        values: list[Any],
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> dict[str, ExperimentResult]:
        """
        One run per value of ``param_name``, keyed ``"<param>=<value>"``.

        Raises KeyError if ``param_name`` is not a SimulationConfig field.
        """
        if param_name not in {f.name for f in fields(base_config)}:
            raise KeyError(f"Unknown parameter: '{param_name}'")
        results: dict[str, ExperimentResult] = {}
        for value in values:
            label = f"{param_name}={value}"
            config = replace(
                base_config, **{"experiment_name": f"sweep_{label}", param_name: value},
            )
            results[label] = self.run_experiment(config, ticks, collect_metrics)
        return results

    def run_multi_seed(
        self,
        config: SimulationConfig,
        seeds: list[int],
        ticks: int | None = None,
        collect_metrics: bool = False,
    ) -> list[ExperimentResult]:
        return [
            self.run_experiment(
                replace(config, random_seed=seed,
                        experiment_name=f"{config.experiment_name}_seed{seed}"),
                ticks, collect_metrics,
            )
            for seed in seeds
        ]
