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
Functions for sampling flat grid fields at fractional positions.

The semi-Lagrangian advection step needs the value of a field at the departure
point of every cell, which in general lies between grid points. This module
provides the clamped bilinear interpolation used for that purpose. Both scalar
fields `(L,)` and vector fields `(L, 2)` are supported; for a vector field each
component is interpolated with the same weights.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
from jax_stencil.base import grids

# --- Type Aliases ---
Array = grids.Array
Grid = grids.Grid


def clamp_to_grid(
    x: Array,
    y: Array,
    grid: Grid,
) -> Tuple[jax.Array, jax.Array]:
  """
  Clamps sample coordinates to the grid, `x` to `[0, W-1]` and `y` to `[0, H-1]`.

  Positions outside the domain are pulled back onto its edge rather than being
  wrapped, so every subsequent read stays inside the field.
  """
  return (jnp.clip(x, 0, grid.width - 1), jnp.clip(y, 0, grid.height - 1))


def _broadcast_weight(weight: jax.Array, field: jax.Array) -> jax.Array:
  # A `(L,)` weight must broadcast against a `(L, 2)` vector field.
  return jnp.reshape(weight, weight.shape + (1,) * (field.ndim - 1))


def bilinear(
    field: Array,
    x: Array,
    y: Array,
    grid: Grid,
) -> jax.Array:
  """
  Bilinearly interpolates `field` at the fractional positions `(x, y)`.

  The four surrounding cells are found with `floor` and `ceil` of each
  coordinate. Values are blended along x first, giving `c0` on the floor row
  and `c1` on the ceil row, and those two are then blended along y. At an
  integer position `floor == ceil` and the fractional weight is zero, so the
  cell's own value is returned unchanged.

  Args:
    field: a scalar or vector field on `grid`.
    x: flat array of x positions, already inside `[0, W-1]`.
    y: flat array of y positions, already inside `[0, H-1]`.
    grid: the grid `field` lives on.

  Returns:
    An array with one interpolated value (or vector) per position.
  """
  field = jnp.asarray(field)
  grid.check(field)

  x_floor = jnp.floor(x)
  y_floor = jnp.floor(y)
  x_ceil = jnp.ceil(x)
  y_ceil = jnp.ceil(y)
  x_frac = _broadcast_weight(x - x_floor, field)
  y_frac = _broadcast_weight(y - y_floor, field)

  def sample(xi, yi):
    index = xi.astype(jnp.int32) + grid.width * yi.astype(jnp.int32)
    return field[index]

  c0 = sample(x_floor, y_floor) * (1 - x_frac) + sample(x_ceil, y_floor) * x_frac
  c1 = sample(x_floor, y_ceil) * (1 - x_frac) + sample(x_ceil, y_ceil) * x_frac
  return c0 * (1 - y_frac) + c1 * y_frac
