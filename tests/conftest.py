"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from sparkstorm.config import FieldConfig
from sparkstorm.core.attractors import Attractor, lookup
from sparkstorm.core.integrator import IntegrationConfig


@pytest.fixture
def lorenz() -> Attractor:
    """Lorenz attractor with the classic σ=10, ρ=28, β=8/3."""
    return lookup("lorenz")


@pytest.fixture
def spark_config() -> IntegrationConfig:
    """dt=0.005 with the y/z squash used by the spark scenes."""
    return IntegrationConfig(dt=0.005, axis_scale=(1.0, 1.18, 0.8))


@pytest.fixture
def small_field() -> FieldConfig:
    """An 8×6 grid spread over a region away from the Lorenz fixed point."""
    return FieldConfig(grid_size=(8, 6), origin=(1.0, 1.0, 1.0), extent=(4.0, 4.0))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)
