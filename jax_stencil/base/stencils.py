# Copyright 2021 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
A generic Jacobi solver for linear systems described by a local stencil.

The solver knows nothing about fluids. It approximates `x` in `Ax = b` where
every row `i` of `A` has the same shape:

    (Ax)_i = x_i / id_inverse + Σ_s stencil[s].value * x[i + stencil[s].offset]

`id_inverse` is the reciprocal of the diagonal entry `A_ii` and the stencil is
an ordered tuple of `StencilElement`s describing the off-diagonal terms as
signed offsets into the flat field. A term whose neighbour `i + offset` falls
outside `[0, L)` is simply omitted; the field is neither wrapped nor mirrored.

One Jacobi sweep computes every new `x_i` from the *previous* iterate only:

    x_next[i] = id_inverse * (b[i] - Σ_s value_s * x_prev[i + offset_s])

`jacobi_step` performs a single sweep and `jacobi_solve` runs a fixed number of
them inside `jax.lax.fori_loop`, whose loop carry plays the role of the
ping-pong buffer pair. No convergence test is made; the caller decides how many
sweeps are enough.

The explicit matrix form of a stencil system (`stencil_matrix`) is provided
for validation against direct sparse solvers.
"""

import dataclasses
import operator
from typing import Sequence, Tuple

import jax
import jax.numpy as jnp
from jax import lax
import numpy as np
import scipy.sparse

from jax_stencil.base import grids

# --- Type Aliases ---
Array = grids.Array
ShapeMismatchError = grids.ShapeMismatchError


@dataclasses.dataclass(frozen=True)
class StencilElement:
  """
  One off-diagonal term of a stencil system.

  Attributes:
    offset: signed delta added to the row's linear index to reach the
      neighbour this term couples to.
    value: coefficient of the neighbour in the row.
  """
  offset: int
  value: float

  def __post_init__(self):
    # Offsets are used as static slice bounds, so they must be plain ints.
    object.__setattr__(self, 'offset', operator.index(self.offset))
    object.__setattr__(self, 'value', float(self.value))


Stencil = Tuple[StencilElement, ...]


def mirrored(stencil: Sequence[StencilElement]) -> Stencil:
  """
  Returns a symmetric stencil by appending the negated-offset twin of each term.

  Symmetric systems are conveniently described by their positive offsets
  only; `mirrored(((1, v), (W, v)))` yields the terms at `+1, -1, +W, -W`.
  """
  result = []
  for element in stencil:
    result.append(element)
    result.append(StencilElement(-element.offset, element.value))
  return tuple(result)


def laplacian_stencil(width: int, value: float = 1.0) -> Stencil:
  """The 4-neighbour stencil (`±1`, `±width`) of a row-major 2D grid."""
  return mirrored((StencilElement(1, value), StencilElement(width, value)))


def _valid_range(offset: int, length: int) -> Tuple[int, int]:
  """Rows `[lo, hi)` for which `i + offset` is a valid index."""
  return max(0, -offset), min(length, length - offset)


def _check_operands(*arrays: Array) -> int:
  for array in arrays:
    if array.ndim != 1:
      raise ShapeMismatchError(
          f'stencil operands must be flat scalar fields, got shape {array.shape}')
  return grids.consistent_length(*arrays)


def jacobi_step(
    id_inverse: float,
    stencil: Sequence[StencilElement],
    x_prev: Array,
    b: Array,
) -> jax.Array:
  """
  Performs one Jacobi sweep for the stencil system `(id_inverse, stencil)`.

  Args:
    id_inverse: reciprocal of the diagonal term `A_ii`.
    stencil: the off-diagonal terms of `A`.
    x_prev: the previous iterate. It is never modified.
    b: the right-hand side.

  Returns:
    The next iterate, a new array with the length of `x_prev`.

  Raises:
    ShapeMismatchError: if `x_prev` and `b` are not flat arrays of one length.
  """
  x_prev = jnp.asarray(x_prev)
  b = jnp.asarray(b)
  length = _check_operands(x_prev, b)

  x_next = b * id_inverse
  for element in stencil:
    lo, hi = _valid_range(element.offset, length)
    if lo >= hi:
      continue
    neighbours = x_prev[lo + element.offset:hi + element.offset]
    x_next = x_next.at[lo:hi].add(-(neighbours * element.value * id_inverse))
  return x_next


def jacobi_solve(
    id_inverse: float,
    stencil: Sequence[StencilElement],
    x0: Array,
    b: Array,
    iterations: int,
) -> jax.Array:
  """
  Runs `iterations` Jacobi sweeps starting from the initial guess `x0`.

  Each sweep reads only the iterate produced by the one before it, so the
  sweeps are strictly sequential. They run inside `lax.fori_loop`; the loop
  carry holds the current iterate and is replaced by the new one after every
  sweep.
  """
  iterations = operator.index(iterations)
  if iterations < 0:
    raise ValueError(f'iterations must be non-negative, got {iterations}')
  x0 = jnp.asarray(x0)
  b = jnp.asarray(b)
  _check_operands(x0, b)
  stencil = tuple(stencil)
  dtype = jnp.result_type(x0, b)

  def body_fn(_, x):
    return jacobi_step(id_inverse, stencil, x, b).astype(dtype)

  return lax.fori_loop(0, iterations, body_fn, x0.astype(dtype))


def apply_stencil(
    id_inverse: float,
    stencil: Sequence[StencilElement],
    x: Array,
) -> jax.Array:
  """Computes the matrix-vector product `Ax` without forming `A`."""
  x = jnp.asarray(x)
  length = _check_operands(x)
  ax = x / id_inverse
  for element in stencil:
    lo, hi = _valid_range(element.offset, length)
    if lo >= hi:
      continue
    ax = ax.at[lo:hi].add(x[lo + element.offset:hi + element.offset] * element.value)
  return ax


def residual(
    id_inverse: float,
    stencil: Sequence[StencilElement],
    x: Array,
    b: Array,
) -> jax.Array:
  """The residual `b - Ax`; zero once the iteration has converged."""
  b = jnp.asarray(b)
  _check_operands(jnp.asarray(x), b)
  return b - apply_stencil(id_inverse, stencil, x)


def stencil_matrix(
    id_inverse: float,
    stencil: Sequence[StencilElement],
    size: int,
) -> scipy.sparse.csr_matrix:
  """
  Assembles the explicit sparse matrix `A` of a stencil system.

  Terms that share an offset are summed, matching the accumulation performed
  by `jacobi_step`.
  """
  rows = [np.arange(size)]
  cols = [np.arange(size)]
  data = [np.full(size, 1.0 / id_inverse)]
  for element in stencil:
    lo, hi = _valid_range(element.offset, size)
    if lo >= hi:
      continue
    row = np.arange(lo, hi)
    rows.append(row)
    cols.append(row + element.offset)
    data.append(np.full(hi - lo, element.value))
  matrix = scipy.sparse.coo_matrix(
      (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
      shape=(size, size))
  return matrix.tocsr()
