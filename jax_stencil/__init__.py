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
`jax_stencil` approximates solutions of stencil linear systems with Jacobi
iteration and uses that solver inside a 2D "stable fluids" simulation.

The package is organized as follows:
- `base`: grids, the generic stencil solver and the per-frame numerical
  steps (advection, divergence, pressure projection, forcing, time stepping).
- `output`: serialization of frames to Netpbm rasters on a background thread.
- `config` and `simulation`: the validated run configuration and the driver
  that sequences the frames.
"""

import jax_stencil.base
import jax_stencil.output
import jax_stencil.config
import jax_stencil.simulation
