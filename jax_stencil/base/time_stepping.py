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
Functions for advancing the simulation state by one frame.

The architecture follows a simple pattern:

1.  **Equation Definition Class**: `StableFluidsEquation` bundles the three
    component functions of one frame: the forcing that injects the source, the
    advection of color and velocity, and the pressure projection.

2.  **Time-Stepper Factory**: `stable_fluids_step` takes an equation and
    returns a new function.

3.  **Step Function**: the returned `step_fn` takes a `FluidState` and returns
    the state one frame later. It is pure, so it can be passed to `jax.jit`
    once and called for every frame.

The order of the components inside a frame is fixed: inject, advect, project.
Each stage consumes the complete output of the previous one.
"""

import dataclasses
import functools
from typing import Callable, Tuple

import jax
from jax_stencil.base import advection
from jax_stencil.base import forcings
from jax_stencil.base import grids
from jax_stencil.base import pressure
from jax_stencil.base import state as state_lib

FluidState = state_lib.FluidState
# A function that takes a state and returns the state one frame later.
TimeStepFn = Callable[[FluidState], FluidState]
AdvectionFn = Callable[[jax.Array, jax.Array], Tuple[jax.Array, jax.Array]]
ForcingFn = Callable[[jax.Array, jax.Array], Tuple[jax.Array, jax.Array]]
ProjectionFn = Callable[[FluidState], FluidState]


@dataclasses.dataclass(frozen=True)
class StableFluidsEquation:
  """
  A container for the functions defining one frame of the stable-fluids method.

  Attributes:
    forcing: `(color, velocity) -> (color, velocity)` with sources imposed.
    advection: `(color, velocity) -> (next_color, next_velocity)`.
    pressure_projection: `FluidState -> FluidState` making velocity
      (approximately) divergence-free.
  """
  forcing: ForcingFn
  advection: AdvectionFn
  pressure_projection: ProjectionFn

  @classmethod
  def build(
      cls,
      grid: grids.Grid,
      source: forcings.SourceForcing,
      jacobi_iterations: int,
  ) -> 'StableFluidsEquation':
    """The reference equation: one source, semi-Lagrangian advection, Jacobi projection."""
    return cls(
        forcing=functools.partial(source, grid=grid),
        advection=functools.partial(advection.advect, grid=grid),
        pressure_projection=functools.partial(
            pressure.projection_and_update_pressure,
            iteration_count=jacobi_iterations, grid=grid),
    )


def stable_fluids_step(equation: StableFluidsEquation) -> TimeStepFn:
  """
  Creates the step function advancing a `FluidState` by one frame.

  Args:
    equation: the component functions of a frame.

  Returns:
    A `TimeStepFn`.
  """

  def step_fn(state: FluidState) -> FluidState:
    color, velocity = equation.forcing(state.color, state.velocity)
    color, velocity = equation.advection(color, velocity)
    state = dataclasses.replace(state, color=color, velocity=velocity)
    state = equation.pressure_projection(state)
    return dataclasses.replace(state, frame=state.frame + 1)

  # The name shows up in JAX's profiler output.
  return jax.named_call(step_fn, name='stable_fluids_step')
