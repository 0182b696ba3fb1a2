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
This `__init__.py` file makes the `jax_stencil.base` directory a Python package.

Importing the modules here allows e.g. `from jax_stencil.base import stencils`.
"""

# --- Foundational data structures and the generic solver ---

# The `Grid` and flat-field shape checks (`ShapeMismatchError`).
import jax_stencil.base.grids

# `StencilElement` and the Jacobi solver, independent of any PDE.
import jax_stencil.base.stencils

# Clamped bilinear sampling of flat fields.
import jax_stencil.base.interpolation

# Divergence and pressure gradient with the wall rules of the projection.
import jax_stencil.base.finite_differences


# --- Stable-fluids steps ---

# The `FluidState` PyTree carried from frame to frame.
import jax_stencil.base.state

# Semi-Lagrangian advection of color and velocity.
import jax_stencil.base.advection

# Jacobi pressure projection.
import jax_stencil.base.pressure

# The persistent emitting source.
import jax_stencil.base.forcings

# Assembles the steps into a frame step function.
import jax_stencil.base.time_stepping
