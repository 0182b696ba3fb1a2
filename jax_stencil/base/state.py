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
The container for the complete state of a stable-fluids simulation.

`FluidState` is registered as a JAX PyTree, so the whole state can be passed
into and out of a jit-compiled step function as a single value. All of its
fields are allocated once by `FluidState.zeros` and then carried from frame to
frame; each frame produces the next state from the previous one.
"""

import dataclasses
from typing import Tuple

import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class
from jax_stencil.base import grids


@register_pytree_node_class
@dataclasses.dataclass
class FluidState:
  """
  Every grid of the simulation at one point in time.

  Attributes:
    color: advected marker field, shape `(L,)`.
    velocity: velocity field, shape `(L, 2)`.
    pressure: pressure from the latest projection, shape `(L,)`. It is also the
      initial guess of the next frame's Jacobi iteration.
    divergence: divergence of the advected velocity, i.e. the right-hand side
      of the latest pressure solve, shape `(L,)`.
    frame: number of frames simulated so far.
  """
  color: jax.Array
  velocity: jax.Array
  pressure: jax.Array
  divergence: jax.Array
  frame: jax.Array

  def tree_flatten(self):
    """Flattens the state into its arrays; there is no static data."""
    children = (self.color, self.velocity, self.pressure, self.divergence,
                self.frame)
    aux_data = None
    return children, aux_data

  @classmethod
  def tree_unflatten(cls, aux_data, children):
    """Reconstructs the state from its flattened parts."""
    return cls(*children)

  @classmethod
  def zeros(cls, grid: grids.Grid, dtype=jnp.float32) -> 'FluidState':
    """Allocates a quiescent, zero-initialized state on `grid`."""
    return cls(
        color=grid.zeros(dtype),
        velocity=grid.zeros_vector(dtype),
        pressure=grid.zeros(dtype),
        divergence=grid.zeros(dtype),
        frame=jnp.zeros((), dtype=jnp.int32),
    )

  def fields(self) -> Tuple[Tuple[str, jax.Array], ...]:
    """`(name, array)` pairs of every grid-sized field."""
    return (('color', self.color), ('velocity', self.velocity),
            ('pressure', self.pressure), ('divergence', self.divergence))
