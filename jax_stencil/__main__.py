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
Stable-fluids runner.

Usage:
    python -m jax_stencil
    python -m jax_stencil width=128 height=128 source_x=62 frame_count=100
    python -m jax_stencil output_dir=frames emit_velocity=true output_every=10
"""

import logging

import hydra
from hydra.core.config_store import ConfigStore
from omegaconf import DictConfig, OmegaConf

from jax_stencil import config as config_lib
from jax_stencil import simulation

log = logging.getLogger(__name__)

ConfigStore.instance().store(name='config', node=config_lib.SimulationConfig)


@hydra.main(version_base='1.3', config_path=None, config_name='config')
def main(cfg: DictConfig) -> None:
  log.info('configuration:\n%s', OmegaConf.to_yaml(cfg))
  sim_config = config_lib.SimulationConfig(
      **OmegaConf.to_container(cfg, resolve=True))
  state = simulation.run(sim_config)
  log.info('final color mass %.4f', float(state.color.sum()))


if __name__ == '__main__':
  main()
