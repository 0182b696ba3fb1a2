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
Finite difference operators on flat grid fields.

Two operators are needed by the projection step:

- `divergence`: the net outflow of the velocity field at every cell. Interior
  cells use the central difference `(f[i+1] - f[i-1]) / 2`. Boundary cells use
  the neighbour value alone, `f[1]` at the first cell and `-f[N-2]` at the
  last one, along each axis.

- `pressure_gradient`: the central difference of a scalar field, restricted to
  the interior. A component whose axis position is on a wall is zero, which
  leaves the wall cells' velocity untouched by the projection.

Each operator reshapes the flat field into its `(H, W)` view, moves the axis
of differentiation last, computes whole slabs at once and flattens the result.
"""

import jax
import jax.numpy as jnp
from jax_stencil.base import grids

# Type aliases for clarity.
Array = grids.Array
Grid = grids.Grid


def _boundary_difference(f: jax.Array, axis: int) -> jax.Array:
  """Central difference inside, `f[1]` and `-f[N-2]` on the two ends."""
  f = jnp.moveaxis(f, axis, -1)
  first = f[..., 1:2]
  interior = (f[..., 2:] - f[..., :-2]) / 2
  last = -f[..., -2:-1]
  return jnp.moveaxis(jnp.concatenate([first, interior, last], axis=-1), -1, axis)


def _interior_difference(f: jax.Array, axis: int) -> jax.Array:
  """Central difference inside, zero on the two ends."""
  f = jnp.moveaxis(f, axis, -1)
  interior = (f[..., 2:] - f[..., :-2]) / 2
  wall = jnp.zeros_like(f[..., :1])
  return jnp.moveaxis(jnp.concatenate([wall, interior, wall], axis=-1), -1, axis)


def divergence(velocity: Array, grid: Grid) -> jax.Array:
  """
  Approximates the divergence `∂u/∂x + ∂v/∂y` of a velocity field.

  Args:
    velocity: vector field of shape `(L, 2)`.
    grid: the grid `velocity` lives on.

  Returns:
    A scalar field of shape `(L,)`.
  """
  velocity = jnp.asarray(velocity)
  grid.check(velocity)
  if velocity.ndim != 2:
    raise grids.ShapeMismatchError(
        f'divergence() expects a vector field, got shape {velocity.shape}')
  v = grid.to_2d(velocity)
  # Axis 1 of the (H, W) view runs along x, axis 0 along y.
  du_dx = _boundary_difference(v[..., 0], axis=1)
  dv_dy = _boundary_difference(v[..., 1], axis=0)
  return grid.flatten(du_dx + dv_dy)


def pressure_gradient(pressure: Array, grid: Grid) -> jax.Array:
  """
  Central difference gradient of a scalar field, zero on the walls.

  Returns:
    A vector field of shape `(L, 2)`.
  """
  pressure = jnp.asarray(pressure)
  grid.check(pressure)
  if pressure.ndim != 1:
    raise grids.ShapeMismatchError(
        f'pressure_gradient() expects a scalar field, got shape {pressure.shape}')
  p = grid.to_2d(pressure)
  dp_dx = _interior_difference(p, axis=1)
  dp_dy = _interior_difference(p, axis=0)
  return grid.flatten(jnp.stack([dp_dx, dp_dy], axis=-1))
