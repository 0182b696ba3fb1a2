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
Semi-Lagrangian advection of the color and velocity fields.

Advection transports a quantity with the bulk motion of the fluid. The
semi-Lagrangian method computes the *next* value of a field directly rather
than its time derivative: every grid point is traced backward along the
velocity to a "departure point", and the field is interpolated there.

Cells are unit-spaced and one frame is one unit of time, so the departure
point of cell `(x, y)` is simply `(x, y) - velocity[x, y]`. Departure points
that leave the domain are clamped onto its edge.

The method is unconditionally stable but diffusive, and it does not conserve
the advected quantity exactly.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
from jax_stencil.base import grids
from jax_stencil.base import interpolation

# --- Type Aliases ---
Array = grids.Array
Grid = grids.Grid


def departure_points(
    velocity: Array,
    grid: Grid,
) -> Tuple[jax.Array, jax.Array]:
  """
  Traces every cell one step backward along `velocity`.

  Returns:
    Flat arrays `(x, y)` of departure points, clamped to the grid.
  """
  xs, ys = grid.mesh(dtype=velocity.dtype)
  return interpolation.clamp_to_grid(
      xs - velocity[:, 0], ys - velocity[:, 1], grid)


def advect(
    color: Array,
    velocity: Array,
    grid: Grid,
) -> Tuple[jax.Array, jax.Array]:
  """
  Advects the color and velocity fields by one frame.

  Both fields are resampled at the same departure points, which are computed
  from the velocity *before* the step. Results are written to new arrays, so
  no cell ever reads a value produced in the same pass.

  Args:
    color: scalar field of shape `(L,)`.
    velocity: vector field of shape `(L, 2)`.
    grid: the grid both fields live on.

  Returns:
    A tuple `(next_color, next_velocity)`.

  Raises:
    ShapeMismatchError: if either field does not match `grid`.
  """
  color = jnp.asarray(color)
  velocity = jnp.asarray(velocity)
  grid.check(color, velocity)
  if color.ndim != 1 or velocity.ndim != 2:
    raise grids.ShapeMismatchError(
        'advect() expects a scalar color field and a vector velocity field; '
        f'got shapes {color.shape} and {velocity.shape}')

  x, y = departure_points(velocity, grid)
  next_color = interpolation.bilinear(color, x, y, grid)
  next_velocity = interpolation.bilinear(velocity, x, y, grid)
  return next_color, next_velocity
