#!/usr/bin/env python3
"""Run a baseline famsim simulation and print results."""

import logging

from famsim.core.config import SimulationConfig
from famsim.core.engine import SimulationEngine
from famsim.metrics.collector import MetricsCollector


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = SimulationConfig(
        experiment_name="baseline",
        capacity=200,
        dimension=50,
        ticks_to_run=500,
        random_seed=42,
        initial_trait_variance=0.2,
    )

    print(f"=== famsim: {config.experiment_name} ===")
    print(f"Space: {config.space.value} ({config.dimension}x{config.dimension})")
    print(f"Game: {config.game.value}")
    print(f"Capacity: {config.capacity}")
    print(f"Ticks: {config.ticks_to_run}")
    print()

    engine = SimulationEngine(config)
    collector = MetricsCollector(compute_clustering=True)

    print(f"{'Tick':>5} {'Pop':>5} {'Coop':>5} {'Births':>6} {'Deaths':>6} "
          f"{'Edges':>6} {'Famil':>7} {'Share':>6} {'Bias':>6} {'Clust':>7}")
    print("-" * 70)

    for _ in range(config.ticks_to_run):
        snap = engine.step()
        metrics = collector.collect(engine, snap)
        if snap.tick % 25 == 0:
            print(
                f"{snap.tick:5d} {snap.population_size:5d} {snap.cooperators:5d} "
                f"{snap.births:6d} {snap.deaths:6d} {snap.familiar_edges:6d} "
                f"{snap.mean_familiarity:7.3f} {snap.mean_familiar_share:6.3f} "
                f"{metrics.mean_familiarity_bias:6.3f} {metrics.clustering:7.4f}"
            )

    final = collector.metrics_history[-1]
    print()
    print(f"=== Final State (Tick {final.tick}) ===")
    print(f"Population: {final.population_size}")
    print(f"Cooperator fraction: {final.cooperator_fraction:.3f}")
    print(f"Mean familiarity per edge: {final.mean_familiarity:.3f}")

    print("\nPer-strategy means:")
    for label, m in (("cooperators", final.cooperator_metrics),
                     ("defectors", final.defector_metrics)):
        print(
            f"  {label:12s}: n={m.count:4d} bias={m.familiarity_bias:.3f} "
            f"memory={m.memory_capacity:.2f} cohesion={m.cohesion:.2f} "
            f"fecundity={m.fecundity:.2f} survival={m.survival:.1f}"
        )


if __name__ == "__main__":
    main()
