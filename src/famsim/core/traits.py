"""
Social-memory trait system.

Each agent carries a small trait vector describing how it remembers others.
Trait order is fixed by ``TRAIT_DEFINITIONS``; always index through
``TraitSystem.trait_index`` (or the upper-case attributes) rather than by
position.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from famsim.core.config import SimulationConfig
    from famsim.core.random_stream import RandomStream


# ---------------------------------------------------------------------------
# Trait definitions
# ---------------------------------------------------------------------------
# "beta" traits live on [0, 1]; "gamma" traits are positive and unbounded.
TRAIT_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "familiarity_bias",   "distribution": "beta",  "description": "Weight given to familiar over unfamiliar neighbors"},
    {"name": "memory_capacity",    "distribution": "gamma", "description": "How many individuals can be familiar at once"},
    {"name": "learning_threshold", "distribution": "gamma", "description": "Encounter weight needed before an individual becomes familiar"},
    {"name": "decay_rate",         "distribution": "beta",  "description": "Encounter weight forgotten per tick"},
]

# Beta draws use a tighter spread than gamma draws for the same variance knob.
BETA_VARIANCE_SCALE = 0.75


class TraitSystem:
    """
    Named access to the trait vector plus variation/mutation of whole vectors.

    ``TraitSystem.FAMILIARITY_BIAS`` etc. give indices into the vector.
    """

    def __init__(self, definitions: list[dict[str, Any]] | None = None):
        self.traits = list(definitions or TRAIT_DEFINITIONS)
        self.count = len(self.traits)
        self._name_to_index: dict[str, int] = {}
        for i, trait_def in enumerate(self.traits):
            name = trait_def["name"]
            if trait_def["distribution"] not in ("beta", "gamma"):
                raise ValueError(
                    f"Trait '{name}' has unknown distribution "
                    f"'{trait_def['distribution']}'"
                )
            self._name_to_index[name] = i
            setattr(self, name.upper(), i)

    def trait_index(self, name: str) -> int:
        """Get trait index by name."""
        idx = self._name_to_index.get(name)
        if idx is None:
            raise KeyError(f"Unknown trait: '{name}'")
        return idx

    def trait_name(self, index: int) -> str:
        if 0 <= index < self.count:
            return self.traits[index]["name"]
        raise IndexError(f"Trait index {index} out of range [0, {self.count})")

    def names(self) -> list[str]:
        return [t["name"] for t in self.traits]

    def base_traits(self, config: SimulationConfig) -> np.ndarray:
        """Trait vector built from the configured base values."""
        return np.array([getattr(config, name) for name in self.names()], dtype=np.float64)

    def vary(
        self,
        values: np.ndarray,
        variance: float,
        rate: float,
        rng: RandomStream,
    ) -> np.ndarray:
        """
        Return a copy of ``values`` where each trait is redrawn with probability
        ``rate`` around its current value.

        Beta traits are drawn on [0, 1] with ``variance * 0.75``; gamma traits
        are drawn positive with ``variance``. Zero variance returns an
        unchanged copy without consuming any draws.
        """
        result = np.array(values, dtype=np.float64)
        if variance <= 0:
            return result
        for i, trait_def in enumerate(self.traits):
            if not rng.chance(rate):
                continue
            if trait_def["distribution"] == "beta":
                result[i] = rng.beta_around(result[i], variance * BETA_VARIANCE_SCALE)
            else:
                result[i] = rng.gamma_around(result[i], variance)
        return result

    def __repr__(self) -> str:
        return f"TraitSystem(count={self.count})"


DEFAULT_TRAITS = TraitSystem()
