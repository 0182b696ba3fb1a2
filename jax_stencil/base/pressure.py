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
Functions for pressure projection with an iterative Jacobi Poisson solver.

In an incompressible fluid the velocity field `v` must be divergence-free
(`∇ ⋅ v = 0`). After advection this is generally no longer true. The
**pressure projection** restores it in two stages:

1.  **Solve the Pressure Poisson Equation** `∇²p = ∇ ⋅ v`. The discrete
    Laplacian on the unit-spaced grid is the 4-neighbour stencil with a
    diagonal of `-4`, i.e. `id_inverse = -0.25` and coefficient `1` at offsets
    `±1` and `±W`. The system is solved approximately with a fixed number of
    Jacobi sweeps (see `jax_stencil.base.stencils`).

2.  **Correct the Velocity** `v_new = v - ∇p`, using the central difference
    gradient on interior cells and no correction on the walls.

The solve is warm-started from the previous frame's pressure, so the sweeps of
consecutive frames accumulate towards the solution instead of restarting
from zero.
"""

import dataclasses
from typing import Tuple

import jax
import jax.numpy as jnp
from jax_stencil.base import finite_differences as fd
from jax_stencil.base import grids
from jax_stencil.base import state as state_lib
from jax_stencil.base import stencils

# --- Type Aliases ---
Array = grids.Array
Grid = grids.Grid
FluidState = state_lib.FluidState

# Reciprocal of the -4 diagonal of the 5-point Laplacian.
PRESSURE_ID_INVERSE = -0.25


def pressure_system(grid: Grid) -> Tuple[float, stencils.Stencil]:
  """Returns `(id_inverse, stencil)` of the discrete Laplacian on `grid`."""
  return PRESSURE_ID_INVERSE, stencils.laplacian_stencil(grid.width)


def project(
    divergence_field: Array,
    pressure: Array,
    iteration_count: int,
    grid: Grid,
) -> jax.Array:
  """
  Approximately solves `∇²p = divergence_field` for the pressure.

  Args:
    divergence_field: the right-hand side, a scalar field on `grid`.
    pressure: the initial guess, normally the previous frame's pressure.
    iteration_count: number of Jacobi sweeps to perform.
    grid: the grid both fields live on.

  Returns:
    The pressure after `iteration_count` sweeps.
  """
  divergence_field = jnp.asarray(divergence_field)
  pressure = jnp.asarray(pressure)
  grid.check(divergence_field, pressure)
  id_inverse, stencil = pressure_system(grid)
  return stencils.jacobi_solve(
      id_inverse, stencil, pressure, divergence_field, iteration_count)


def apply_pressure(velocity: Array, pressure: Array, grid: Grid) -> jax.Array:
  """Subtracts the interior pressure gradient from `velocity`."""
  velocity = jnp.asarray(velocity)
  grid.check(velocity)
  return velocity - fd.pressure_gradient(pressure, grid)


def projection_and_update_pressure(
    state: FluidState,
    iteration_count: int,
    grid: Grid,
) -> FluidState:
  """
  Applies pressure projection to the state's velocity and stores the pressure.

  This orchestrates the whole projection:
  1. Computes the divergence of the (advected) velocity.
  2. Runs the Jacobi solver, warm-started from `state.pressure`.
  3. Subtracts the pressure gradient from the velocity.

  Returns:
    A new `FluidState` with the corrected velocity, the new pressure and the
    divergence that served as the right-hand side.
  """
  divergence_field = fd.divergence(state.velocity, grid)
  pressure = project(divergence_field, state.pressure, iteration_count, grid)
  velocity = apply_pressure(state.velocity, pressure, grid)
  return dataclasses.replace(
      state, velocity=velocity, pressure=pressure, divergence=divergence_field)
