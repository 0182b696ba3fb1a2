"""Pytest configuration and shared fixtures for the stencil and fluid tests."""

import jax
import numpy as np
import pytest

from jax_stencil.base import grids
from jax_stencil.base import stencils


@pytest.fixture
def small_grid():
    """An 8x8 grid, large enough to have a real interior."""
    return grids.Grid(8, 8)


@pytest.fixture
def dominant_system():
    """A strictly diagonally dominant 1D system: diagonal 5, four -1 neighbours."""
    stencil = stencils.mirrored(
        (stencils.StencilElement(1, -1.0), stencils.StencilElement(10, -1.0))
    )
    return 0.2, stencil


@pytest.fixture
def rhs():
    """A reproducible random right-hand side of length 100."""
    return jax.random.uniform(jax.random.PRNGKey(0), (100,))


@pytest.fixture
def ramp(small_grid):
    """Scalar field whose value at (x, y) is x + 10 * y."""
    xs, ys = small_grid.mesh()
    return np.asarray(xs + 10 * ys)
