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
Background serialization of simulation frames.

The simulation loop hands every finished frame to a `FrameWriter` and carries
on with the next one. The writer copies the fields to host memory at hand-off
time, so later frames can never change what is written, and formats the
files on a worker thread. `close()` waits for every outstanding write.
"""

import concurrent.futures
import logging
import pathlib
from typing import List, Optional, Union

import numpy as np
from jax_stencil.output import ppm

log = logging.getLogger(__name__)


class FrameWriter:
  """
  Writes one Netpbm file per submitted frame on a background thread.

  Files are named `frame_00000.ppm` (color and velocity) or
  `frame_00000.pgm` (color only) after the frame index.

  Use as a context manager, or call `close()` explicitly; either way all
  pending writes are joined and the first write error is re-raised.
  """

  def __init__(
      self,
      directory: Union[str, pathlib.Path],
      width: int,
      height: int,
      emit_velocity: bool = False,
      max_workers: int = 1,
  ):
    self.directory = pathlib.Path(directory)
    self.directory.mkdir(parents=True, exist_ok=True)
    self.width = width
    self.height = height
    self.emit_velocity = emit_velocity
    self._executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix='frame-writer')
    self._pending: List[concurrent.futures.Future] = []

  @property
  def extension(self) -> str:
    return 'ppm' if self.emit_velocity else 'pgm'

  def path_for(self, frame: int) -> pathlib.Path:
    return self.directory / f'frame_{frame:05d}.{self.extension}'

  def submit(
      self,
      frame: int,
      color,
      velocity=None,
  ) -> concurrent.futures.Future:
    """
    Schedules `frame` for writing and returns immediately.

    Args:
      frame: frame index used for the file name.
      color: the frame's color field.
      velocity: the frame's velocity field; required when `emit_velocity`.

    Returns:
      A future resolving to the path of the written file.
    """
    if self.emit_velocity and velocity is None:
      raise ValueError('a velocity field is required when emit_velocity is set')
    color = np.array(color, copy=True)
    if self.emit_velocity:
      velocity = np.array(velocity, copy=True)
    else:
      velocity = None
    future = self._executor.submit(
        self._write, self.path_for(frame), color, velocity)
    self._pending.append(future)
    return future

  def _write(
      self,
      path: pathlib.Path,
      color: np.ndarray,
      velocity: Optional[np.ndarray],
  ) -> pathlib.Path:
    with open(path, 'w') as stream:
      ppm.write_frame(stream, color, self.width, self.height, velocity)
    log.debug('wrote %s', path)
    return path

  def close(self) -> None:
    """Waits for all pending writes; re-raises the first failure."""
    self._executor.shutdown(wait=True)
    pending, self._pending = self._pending, []
    for future in pending:
      future.result()

  def __enter__(self) -> 'FrameWriter':
    return self

  def __exit__(self, exc_type, exc_value, traceback) -> None:
    if exc_type is None:
      self.close()
      return
    # Join the writes but keep the in-flight exception.
    self._executor.shutdown(wait=True)
    pending, self._pending = self._pending, []
    for future in pending:
      if future.exception() is not None:
        log.error('frame write failed during error unwinding: %s',
                  future.exception())
