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
Core data structures for the regular grid and the flat fields defined on it.

Every field in this package is stored as a flat, row-major JAX array:

- A **scalar field** (color, divergence, pressure) has shape `(W * H,)`.
- A **vector field** (velocity) has shape `(W * H, 2)`, where column 0 holds
  the x component and column 1 the y component.

The cell `(x, y)` lives at linear index `x + W * y`. Because this is exactly
the memory order of a `(H, W)` array, the finite difference operators reshape
the flat data into a 2D view (`to_2d`), work on whole rows/columns at once,
and flatten the result again (`flatten`).

The `Grid` object itself holds only static metadata, so it can be closed over
by jit-compiled functions without being traced.
"""
from __future__ import annotations

import dataclasses
import operator
from typing import Tuple, Union

import jax
import jax.numpy as jnp
import numpy as np

# --- Type Aliases ---
Array = Union[np.ndarray, jax.Array]


class ShapeMismatchError(ValueError):
  """Raised when fields that must share a grid have incompatible shapes."""


def consistent_length(*arrays: Array) -> int:
  """
  Returns the common leading length of `arrays`, or raises `ShapeMismatchError`.

  Scalar and vector fields are compared by their first dimension, so a
  `(L,)` color field and a `(L, 2)` velocity field are consistent.
  """
  lengths = {array.shape[0] if array.ndim else None for array in arrays}
  if len(lengths) != 1 or None in lengths:
    shapes = [tuple(array.shape) for array in arrays]
    raise ShapeMismatchError(f'arrays do not share a common length: {shapes}')
  return lengths.pop()


@dataclasses.dataclass(init=False, frozen=True)
class Grid:
  """
  Describes the size of the square computational grid.

  The grid is immutable (`frozen=True`) because the simulation never resizes
  its fields. Cells are unit-spaced: physical coordinates and integer indices
  coincide, which is what the semi-Lagrangian backward trace relies on.

  Attributes:
    width: number of cells along x (`W`).
    height: number of cells along y (`H`).
  """
  width: int
  height: int

  def __init__(self, width: int, height: int):
    # `operator.index` rejects floats such as `256.0` early.
    object.__setattr__(self, 'width', operator.index(width))
    object.__setattr__(self, 'height', operator.index(height))
    if self.width <= 0 or self.height <= 0:
      raise ValueError(
          f'grid dimensions must be positive, got {self.width}x{self.height}')

  @property
  def shape(self) -> Tuple[int, int]:
    """The `(H, W)` shape of the 2D view of a scalar field."""
    return (self.height, self.width)

  @property
  def size(self) -> int:
    """Number of cells, i.e. the length `L` of every flat field."""
    return self.width * self.height

  def index(self, x: int, y: int) -> int:
    """Linear index of the cell `(x, y)`."""
    return x + self.width * y

  def mesh(self, dtype=jnp.float32) -> Tuple[jax.Array, jax.Array]:
    """
    Returns flat arrays `(xs, ys)` holding the coordinates of every cell.

    `xs[i]` and `ys[i]` are the `x` and `y` of the cell at linear index `i`.
    """
    ys, xs = jnp.indices(self.shape, dtype=dtype)
    return xs.ravel(), ys.ravel()

  def to_2d(self, field: Array) -> jax.Array:
    """Views a flat field as `(H, W)` (scalar) or `(H, W, 2)` (vector)."""
    self.check(field)
    return jnp.reshape(field, self.shape + field.shape[1:])

  def flatten(self, field: Array) -> jax.Array:
    """Inverse of `to_2d`."""
    return jnp.reshape(field, (self.size,) + field.shape[2:])

  def zeros(self, dtype=jnp.float32) -> jax.Array:
    """A zero-initialized scalar field."""
    return jnp.zeros((self.size,), dtype=dtype)

  def zeros_vector(self, dtype=jnp.float32) -> jax.Array:
    """A zero-initialized 2-vector field."""
    return jnp.zeros((self.size, 2), dtype=dtype)

  def check(self, *fields: Array) -> int:
    """
    Validates that every field lives on this grid.

    Scalar fields must have shape `(L,)` and vector fields `(L, 2)`.

    Returns:
      The grid size `L`.

    Raises:
      ShapeMismatchError: if any field has another length or rank.
    """
    for field in fields:
      if field.shape not in ((self.size,), (self.size, 2)):
        raise ShapeMismatchError(
            f'expected a field of shape ({self.size},) or ({self.size}, 2) '
            f'for a {self.width}x{self.height} grid, got {tuple(field.shape)}')
    return self.size
