"""Tests for the generic Jacobi stencil solver."""

import jax.numpy as jnp
import numpy as np
import pytest
import scipy.sparse
import scipy.sparse.linalg

from jax_stencil.base import grids
from jax_stencil.base import stencils
from jax_stencil.base.stencils import StencilElement


class TestStencilElement:
    """Tests for the stencil description."""

    def test_offset_must_be_integral(self):
        with pytest.raises(TypeError):
            StencilElement(1.5, 1.0)

    def test_is_hashable_and_ordered(self):
        stencil = (StencilElement(1, 1.0), StencilElement(-1, 1.0))
        assert hash(stencil) == hash(tuple(stencil))
        assert [e.offset for e in stencil] == [1, -1]

    def test_mirrored_appends_negated_twins(self):
        stencil = stencils.mirrored((StencilElement(1, 2.0), StencilElement(7, 3.0)))
        assert [(e.offset, e.value) for e in stencil] == [
            (1, 2.0), (-1, 2.0), (7, 3.0), (-7, 3.0)]

    def test_laplacian_stencil(self):
        stencil = stencils.laplacian_stencil(256)
        assert [e.offset for e in stencil] == [1, -1, 256, -256]
        assert all(e.value == 1.0 for e in stencil)


class TestJacobiStep:
    """Tests for a single Jacobi sweep."""

    x_prev = np.array([1.0, 2.0, 3.0, 4.0, 5.0], dtype=np.float32)
    b = np.array([10.0, 20.0, 30.0, 40.0, 50.0], dtype=np.float32)

    def test_positive_offset_omits_last_cells(self):
        """With L=5 and offset 2, cells 3 and 4 get no neighbour term."""
        x_next = stencils.jacobi_step(
            0.5, (StencilElement(2, 3.0),), self.x_prev, self.b)
        # b * 0.5 - x_prev[i + 2] * 3 * 0.5 for i in [0, 3), untouched after.
        expected = [5.0 - 4.5, 10.0 - 6.0, 15.0 - 7.5, 20.0, 25.0]
        np.testing.assert_allclose(x_next, expected, rtol=1e-6)

    def test_negative_offset_omits_first_cells(self):
        x_next = stencils.jacobi_step(
            0.5, (StencilElement(-2, 3.0),), self.x_prev, self.b)
        expected = [5.0, 10.0, 15.0 - 1.5, 20.0 - 3.0, 25.0 - 4.5]
        np.testing.assert_allclose(x_next, expected, rtol=1e-6)

    def test_offset_beyond_field_is_ignored(self):
        x_next = stencils.jacobi_step(
            0.5, (StencilElement(5, 3.0), StencilElement(-9, 1.0)),
            self.x_prev, self.b)
        np.testing.assert_allclose(x_next, self.b * 0.5)

    def test_previous_iterate_is_not_modified(self):
        x_prev = jnp.asarray(self.x_prev)
        stencils.jacobi_step(0.5, stencils.laplacian_stencil(2), x_prev, self.b)
        np.testing.assert_array_equal(x_prev, self.x_prev)

    def test_matches_matrix_form(self, dominant_system, rhs):
        """x_next = D^-1 (b - (A - D) x_prev)."""
        id_inverse, stencil = dominant_system
        x_prev = np.linspace(-1.0, 1.0, 100)
        matrix = stencils.stencil_matrix(id_inverse, stencil, 100)
        off_diagonal = matrix - scipy.sparse.identity(100) / id_inverse
        expected = id_inverse * (np.asarray(rhs) - off_diagonal @ x_prev)

        x_next = stencils.jacobi_step(id_inverse, stencil, x_prev, rhs)
        np.testing.assert_allclose(x_next, expected, rtol=1e-5, atol=1e-6)

    @pytest.mark.parametrize("x_len, b_len", [(5, 4), (4, 5), (1, 5), (5, 0), (0, 3)])
    def test_length_mismatch_raises(self, x_len, b_len):
        with pytest.raises(grids.ShapeMismatchError):
            stencils.jacobi_step(
                -0.25, stencils.laplacian_stencil(2),
                jnp.zeros(x_len), jnp.zeros(b_len))

    def test_non_flat_operand_raises(self):
        with pytest.raises(grids.ShapeMismatchError):
            stencils.jacobi_step(
                -0.25, stencils.laplacian_stencil(2), jnp.zeros((4, 2)), jnp.zeros(4))


class TestJacobiSolve:
    """Tests for repeated sweeps and convergence."""

    def test_converges(self, dominant_system, rhs):
        """1 sweep differs from 1011 sweeps, which equals 2011 sweeps."""
        id_inverse, stencil = dominant_system
        x0 = jnp.zeros(100)

        x_1 = stencils.jacobi_solve(id_inverse, stencil, x0, rhs, 1)
        x_1011 = stencils.jacobi_solve(id_inverse, stencil, x0, rhs, 1011)
        x_2011 = stencils.jacobi_solve(id_inverse, stencil, x_1011, rhs, 1000)

        assert not np.allclose(x_1, x_1011, atol=1e-3)
        np.testing.assert_allclose(x_1011, x_2011, atol=1e-5)

    def test_converges_to_direct_solution(self, dominant_system, rhs):
        id_inverse, stencil = dominant_system
        matrix = stencils.stencil_matrix(id_inverse, stencil, 100)
        expected = scipy.sparse.linalg.spsolve(matrix, np.asarray(rhs, dtype=np.float64))

        x = stencils.jacobi_solve(id_inverse, stencil, jnp.zeros(100), rhs, 500)
        np.testing.assert_allclose(x, expected, rtol=1e-4, atol=1e-5)

    def test_residual_vanishes_at_solution(self, dominant_system, rhs):
        id_inverse, stencil = dominant_system
        x0 = jnp.zeros(100)
        r0 = stencils.residual(id_inverse, stencil, x0, rhs)
        x = stencils.jacobi_solve(id_inverse, stencil, x0, rhs, 500)
        r = stencils.residual(id_inverse, stencil, x, rhs)
        assert float(jnp.max(jnp.abs(r))) < 1e-4 * float(jnp.max(jnp.abs(r0)))

    def test_equals_repeated_steps(self, dominant_system, rhs):
        id_inverse, stencil = dominant_system
        x = jnp.zeros(100)
        for _ in range(3):
            x = stencils.jacobi_step(id_inverse, stencil, x, rhs)
        solved = stencils.jacobi_solve(id_inverse, stencil, jnp.zeros(100), rhs, 3)
        np.testing.assert_allclose(solved, x, rtol=1e-6)

    def test_zero_iterations_returns_initial_guess(self, dominant_system, rhs):
        id_inverse, stencil = dominant_system
        x0 = jnp.arange(100.0)
        np.testing.assert_array_equal(
            stencils.jacobi_solve(id_inverse, stencil, x0, rhs, 0), x0)

    def test_negative_iterations_raise(self, dominant_system, rhs):
        id_inverse, stencil = dominant_system
        with pytest.raises(ValueError):
            stencils.jacobi_solve(id_inverse, stencil, jnp.zeros(100), rhs, -1)

    def test_length_mismatch_raises(self, dominant_system):
        id_inverse, stencil = dominant_system
        with pytest.raises(grids.ShapeMismatchError):
            stencils.jacobi_solve(id_inverse, stencil, jnp.zeros(99), jnp.zeros(100), 5)


class TestStencilMatrix:
    """Tests for the explicit sparse form."""

    def test_laplacian_rows(self):
        matrix = stencils.stencil_matrix(-0.25, stencils.laplacian_stencil(3), 9).toarray()
        # Center cell couples to all four neighbours.
        assert matrix[4, 4] == -4.0
        assert [matrix[4, j] for j in (1, 3, 5, 7)] == [1.0, 1.0, 1.0, 1.0]
        # First cell has no -1 or -3 neighbour: those terms are omitted.
        assert np.count_nonzero(matrix[0]) == 3

    def test_duplicate_offsets_are_summed(self):
        stencil = (StencilElement(1, 1.0), StencilElement(1, 2.0))
        matrix = stencils.stencil_matrix(1.0, stencil, 4).toarray()
        assert matrix[0, 1] == 3.0

    def test_apply_stencil_matches_matrix(self, dominant_system):
        id_inverse, stencil = dominant_system
        x = np.linspace(0.0, 1.0, 100)
        matrix = stencils.stencil_matrix(id_inverse, stencil, 100)
        np.testing.assert_allclose(
            stencils.apply_stencil(id_inverse, stencil, x), matrix @ x, rtol=1e-5, atol=1e-5)
