"""Tests for interpolation and semi-Lagrangian advection."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jax_stencil.base import advection
from jax_stencil.base import grids
from jax_stencil.base import interpolation


def uniform_velocity(grid, vx, vy):
    return jnp.tile(jnp.array([vx, vy], dtype=jnp.float32), (grid.size, 1))


class TestBilinear:
    """Tests for clamped bilinear interpolation."""

    def test_integer_positions_are_exact(self, small_grid, ramp):
        xs, ys = small_grid.mesh()
        np.testing.assert_array_equal(interpolation.bilinear(ramp, xs, ys, small_grid), ramp)

    def test_midpoint_blends_x_then_y(self, small_grid, ramp):
        value = interpolation.bilinear(ramp, jnp.array([2.5]), jnp.array([3.5]), small_grid)
        # Average of (2,3), (3,3), (2,4), (3,4) on x + 10 y.
        np.testing.assert_allclose(value, [2.5 + 35.0])

    def test_vector_field(self, small_grid):
        xs, ys = small_grid.mesh()
        field = jnp.stack([xs, ys], axis=-1)
        value = interpolation.bilinear(field, jnp.array([1.25]), jnp.array([6.75]), small_grid)
        np.testing.assert_allclose(value, [[1.25, 6.75]], rtol=1e-6)

    def test_clamp_to_grid(self, small_grid):
        x, y = interpolation.clamp_to_grid(jnp.array([-3.0, 4.5, 9.0]),
                                           jnp.array([12.0, -0.1, 2.0]), small_grid)
        assert x.tolist() == [0.0, 4.5, 7.0]
        assert y.tolist() == [7.0, 0.0, 2.0]


class TestAdvect:
    """Tests for the advection step."""

    def test_zero_velocity_is_identity(self, small_grid):
        color = jax.random.uniform(jax.random.PRNGKey(1), (small_grid.size,))
        velocity = small_grid.zeros_vector()
        next_color, next_velocity = advection.advect(color, velocity, small_grid)
        np.testing.assert_array_equal(next_color, color)
        np.testing.assert_array_equal(next_velocity, velocity)

    def test_integer_translation(self, small_grid, ramp):
        velocity = uniform_velocity(small_grid, 1.0, 0.0)
        next_color, next_velocity = advection.advect(ramp, velocity, small_grid)
        before = small_grid.to_2d(ramp)
        after = small_grid.to_2d(next_color)
        # Every column takes the value of its left neighbour.
        np.testing.assert_allclose(after[:, 1:], before[:, :-1])
        # The first column traces outside the grid and is clamped onto itself.
        np.testing.assert_allclose(after[:, 0], before[:, 0])
        np.testing.assert_allclose(next_velocity, velocity)

    def test_fractional_translation(self, small_grid, ramp):
        velocity = uniform_velocity(small_grid, 0.0, 0.5)
        next_color, _ = advection.advect(ramp, velocity, small_grid)
        after = small_grid.to_2d(next_color)
        # Half way between rows y - 1 and y: x + 10 y - 5.
        expected = small_grid.to_2d(ramp)[1:] - 5.0
        np.testing.assert_allclose(after[1:], expected, rtol=1e-6)

    def test_large_velocity_reads_stay_on_grid(self, small_grid, ramp):
        velocity = uniform_velocity(small_grid, 100.0, 100.0)
        next_color, _ = advection.advect(ramp, velocity, small_grid)
        np.testing.assert_allclose(next_color, np.full(small_grid.size, ramp[0]))

    def test_shape_mismatch_raises(self, small_grid):
        with pytest.raises(grids.ShapeMismatchError):
            advection.advect(jnp.zeros(63), small_grid.zeros_vector(), small_grid)
        with pytest.raises(grids.ShapeMismatchError):
            advection.advect(small_grid.zeros(), small_grid.zeros(), small_grid)
