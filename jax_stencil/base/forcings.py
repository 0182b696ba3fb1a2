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
"""Forcing terms injected into the fields at the start of every frame."""

import dataclasses
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax_stencil.base import grids


@dataclasses.dataclass(frozen=True)
class SourceForcing:
  """
  A persistent emitter: a horizontal band of cells with fixed velocity and color.

  Every frame the band's cells are overwritten (not incremented) with
  `velocity` and `color`, which models fluid continuously entering the domain.

  Attributes:
    x: column of the leftmost cell of the band.
    y: row of the band.
    width: number of adjacent columns in the band.
    velocity: `(vx, vy)` imposed on the band.
    color: color imposed on the band.
  """
  x: int
  y: int
  width: int
  velocity: Tuple[float, float]
  color: float

  def indices(self, grid: grids.Grid) -> np.ndarray:
    """Linear indices of the band's cells on `grid`."""
    if not (0 <= self.x and self.x + self.width <= grid.width
            and 0 <= self.y < grid.height and self.width > 0):
      raise ValueError(
          f'source band x={self.x}..{self.x + self.width - 1}, y={self.y} '
          f'does not fit a {grid.width}x{grid.height} grid')
    return np.array([grid.index(self.x + i, self.y) for i in range(self.width)])

  def __call__(
      self,
      color: jax.Array,
      velocity: jax.Array,
      grid: grids.Grid,
  ) -> Tuple[jax.Array, jax.Array]:
    """Returns `(color, velocity)` with the source band imposed."""
    grid.check(color, velocity)
    index = self.indices(grid)
    color = color.at[index].set(self.color)
    velocity = velocity.at[index].set(
        jnp.asarray(self.velocity, dtype=velocity.dtype))
    return color, velocity
