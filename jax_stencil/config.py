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
Configuration of a stable-fluids run.

`SimulationConfig` holds every recognized option with the reference values as
defaults: a 256x256 grid, 200 frames, 50 Jacobi sweeps per frame, and a
4-cell source at the bottom center emitting color `1.0` at velocity `(0, 3)`.
It is validated when constructed, so an invalid configuration is reported
before any simulation step runs.

The class doubles as the structured config schema of the command-line entry
point; it therefore uses flat, primitive-typed fields only.
"""

import dataclasses
from typing import Optional

import jax
import jax.numpy as jnp
from jax_stencil.base import forcings
from jax_stencil.base import grids

_SUPPORTED_DTYPES = ('float32', 'float64')


class ConfigurationError(ValueError):
  """Raised for an invalid `SimulationConfig`."""


@dataclasses.dataclass
class SimulationConfig:
  """
  Options of a simulation run.

  Attributes:
    width: grid cells along x. Must equal `height`.
    height: grid cells along y.
    frame_count: number of frames to simulate.
    jacobi_iterations: Jacobi sweeps of the pressure solve per frame.
    source_x: leftmost column of the source band.
    source_y: row of the source band.
    source_width: number of columns in the source band.
    source_velocity_x: x velocity imposed on the source band.
    source_velocity_y: y velocity imposed on the source band.
    source_color: color imposed on the source band.
    dtype: floating point type of all fields.
    check_numerics: warn when a field contains NaN or Inf after a frame.
    output_dir: directory for frame images; no images are written if None.
    output_every: write every n-th frame (the last frame is always written).
    emit_velocity: write color and velocity (PPM) instead of color only (PGM).
  """
  width: int = 256
  height: int = 256
  frame_count: int = 200
  jacobi_iterations: int = 50
  source_x: int = 126
  source_y: int = 0
  source_width: int = 4
  source_velocity_x: float = 0.0
  source_velocity_y: float = 3.0
  source_color: float = 1.0
  dtype: str = 'float32'
  check_numerics: bool = True
  output_dir: Optional[str] = None
  output_every: int = 1
  emit_velocity: bool = False

  def __post_init__(self):
    """Validates the options; raises `ConfigurationError` on the first problem."""
    for name in ('width', 'height', 'frame_count', 'jacobi_iterations',
                 'source_width', 'output_every'):
      value = getattr(self, name)
      if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f'{name} must be a positive integer, got {value!r}')
    if self.width != self.height:
      raise ConfigurationError(
          f'grid must be square, got {self.width}x{self.height}')
    # The boundary difference rules read one neighbour in from each wall.
    if self.width < 3:
      raise ConfigurationError(f'grid must be at least 3x3, got {self.width}')
    if self.dtype not in _SUPPORTED_DTYPES:
      raise ConfigurationError(
          f'dtype must be one of {_SUPPORTED_DTYPES}, got {self.dtype!r}')
    if self.dtype == 'float64' and not jax.config.jax_enable_x64:
      raise ConfigurationError(
          'dtype float64 requires jax.config.update("jax_enable_x64", True)')
    try:
      self.source.indices(self.grid)
    except ValueError as e:
      raise ConfigurationError(str(e)) from e

  @property
  def grid(self) -> grids.Grid:
    return grids.Grid(self.width, self.height)

  @property
  def source(self) -> forcings.SourceForcing:
    return forcings.SourceForcing(
        x=self.source_x,
        y=self.source_y,
        width=self.source_width,
        velocity=(float(self.source_velocity_x), float(self.source_velocity_y)),
        color=float(self.source_color),
    )

  @property
  def jnp_dtype(self):
    return jnp.dtype(self.dtype)
