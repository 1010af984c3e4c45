"""
Shared test configuration.

Provides a fresh SimulationState and a seeded RandomStream per test.
"""

import pytest

from famsim.core.random_stream import RandomStream
from famsim.core.state import SimulationState


@pytest.fixture
def state():
    return SimulationState()


@pytest.fixture
def rng():
    return RandomStream(seed=42)
