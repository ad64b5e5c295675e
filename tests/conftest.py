"""Shared fixtures: the solver fill is expensive, so build it once per session."""
import matplotlib

matplotlib.use("Agg")

import pytest

from threes_solver import Solver


@pytest.fixture(scope="session")
def solver():
    """Fully populated solver."""
    return Solver()
