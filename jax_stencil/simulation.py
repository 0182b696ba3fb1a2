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
The simulation driver.

`simulate` allocates every grid once, compiles the frame step once and then
runs `frame_count` frames, each strictly in the order inject, advect,
divergence, Jacobi sweeps, pressure gradient. After a frame it optionally
checks the fields for NaN/Inf and hands the color (and velocity) field to the
output collaborator.

`run` wires a `FrameWriter` around `simulate` when the configuration asks for
image output and joins it before returning.
"""

import logging
import warnings
from typing import Callable, List, Optional

import jax
import jax.numpy as jnp
from jax_stencil import config as config_lib
from jax_stencil.base import pressure
from jax_stencil.base import state as state_lib
from jax_stencil.base import stencils
from jax_stencil.base import time_stepping
from jax_stencil.output import writer as writer_lib

log = logging.getLogger(__name__)

FluidState = state_lib.FluidState
SimulationConfig = config_lib.SimulationConfig
FrameCallback = Callable[[int, FluidState], None]


class NumericAnomalyWarning(RuntimeWarning):
  """A field contained NaN or Inf after a frame."""


def initial_state(config: SimulationConfig) -> FluidState:
  """The zero-initialized state every run starts from."""
  return FluidState.zeros(config.grid, dtype=config.jnp_dtype)


def make_step(config: SimulationConfig) -> time_stepping.TimeStepFn:
  """Builds and jit-compiles the frame step described by `config`."""
  equation = time_stepping.StableFluidsEquation.build(
      config.grid, config.source, config.jacobi_iterations)
  return jax.jit(time_stepping.stable_fluids_step(equation))


def non_finite_fields(state: FluidState) -> List[str]:
  """Names of the state's fields that contain NaN or Inf."""
  names, fields = zip(*state.fields())
  # One device-to-host transfer for all fields.
  finite = jax.device_get(
      jnp.stack([jnp.all(jnp.isfinite(field)) for field in fields]))
  return [name for name, ok in zip(names, finite) if not ok]


def check_numerics(state: FluidState, frame: int) -> None:
  """Warns with `NumericAnomalyWarning` if any field is not finite."""
  bad = non_finite_fields(state)
  if bad:
    message = f'non-finite values in {", ".join(bad)} after frame {frame}'
    log.warning(message)
    warnings.warn(message, NumericAnomalyWarning, stacklevel=2)


def pressure_residual_norm(state: FluidState, config: SimulationConfig) -> float:
  """Max-norm of `b - Ax` of the frame's pressure solve."""
  id_inverse, stencil = pressure.pressure_system(config.grid)
  r = stencils.residual(id_inverse, stencil, state.pressure, state.divergence)
  return float(jnp.max(jnp.abs(r)))


def simulate(
    config: SimulationConfig,
    writer: Optional[writer_lib.FrameWriter] = None,
    callback: Optional[FrameCallback] = None,
) -> FluidState:
  """
  Runs the simulation described by `config`.

  Args:
    config: a validated `SimulationConfig`.
    writer: receives every `config.output_every`-th frame and the last frame.
    callback: called as `callback(frame_index, state)` after every frame.

  Returns:
    The state after the last frame.
  """
  step = make_step(config)
  state = initial_state(config)
  last = config.frame_count - 1
  log.info('simulating %d frames on a %dx%d grid, %d Jacobi sweeps per frame',
           config.frame_count, config.width, config.height,
           config.jacobi_iterations)

  for frame in range(config.frame_count):
    state = step(state)
    if config.check_numerics:
      check_numerics(state, frame)
    if log.isEnabledFor(logging.DEBUG):
      log.debug('frame %d: pressure residual %.3e', frame,
                pressure_residual_norm(state, config))
    if writer is not None and ((frame + 1) % config.output_every == 0
                               or frame == last):
      writer.submit(frame, state.color,
                    state.velocity if writer.emit_velocity else None)
    if callback is not None:
      callback(frame, state)

  log.info('finished %d frames', config.frame_count)
  return state


def run(config: SimulationConfig) -> FluidState:
  """`simulate`, writing frames to `config.output_dir` when it is set."""
  if config.output_dir is None:
    return simulate(config)
  with writer_lib.FrameWriter(
      config.output_dir, config.width, config.height,
      emit_velocity=config.emit_velocity) as writer:
    state = simulate(config, writer=writer)
  log.info('frames written to %s', config.output_dir)
  return state
