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
Serialization of grid fields to plain-text Netpbm rasters.

Two variants are written:

- `write_ppm` (`P3`): three channels per pixel, the color intensity followed
  by the x and y velocity mapped around mid-grey.
- `write_pgm` (`P2`): a single color intensity channel.

Both start with the 3-line header `magic`, `"W H"`, `"255"` and then store one
text line per grid row with whitespace-separated integers in `[0, 255]`, in
the same row-major order as the flat fields.

Conversions truncate toward zero and saturate at the ends of the range; NaN
maps to 0.
"""

from typing import Optional, TextIO

import numpy as np

MAX_INTENSITY = 255


def _saturate(values: np.ndarray) -> np.ndarray:
  values = np.nan_to_num(np.trunc(values), nan=0.0, posinf=MAX_INTENSITY,
                         neginf=0.0)
  return np.clip(values, 0, MAX_INTENSITY).astype(np.uint8)


def to_intensity(color: np.ndarray) -> np.ndarray:
  """Maps color values in `[0, 1]` to intensities in `[0, 255]`."""
  return _saturate(np.asarray(color, dtype=np.float64) * MAX_INTENSITY)


def velocity_to_intensity(velocity: np.ndarray) -> np.ndarray:
  """Maps a velocity component around 0 to intensities around 128."""
  return _saturate(np.asarray(velocity, dtype=np.float64) * 128 + 128)


def _check(field: np.ndarray, width: int, height: int, shape_suffix=()) -> None:
  expected = (width * height,) + shape_suffix
  if field.shape != expected:
    raise ValueError(f'expected a field of shape {expected}, got {field.shape}')


def _write(stream: TextIO, magic: str, rows: np.ndarray, width: int,
           height: int) -> None:
  stream.write(f'{magic}\n{width} {height}\n{MAX_INTENSITY}\n')
  np.savetxt(stream, rows, fmt='%d', delimiter=' ')


def write_ppm(
    stream: TextIO,
    color: np.ndarray,
    velocity: np.ndarray,
    width: int,
    height: int,
) -> None:
  """
  Writes a `P3` image: per pixel `color vx vy` intensities.

  Args:
    stream: a text stream to write to.
    color: scalar field of shape `(width * height,)`.
    velocity: vector field of shape `(width * height, 2)`.
    width: grid width.
    height: grid height.
  """
  color = np.asarray(color)
  velocity = np.asarray(velocity)
  _check(color, width, height)
  _check(velocity, width, height, (2,))
  pixels = np.stack([
      to_intensity(color),
      velocity_to_intensity(velocity[:, 0]),
      velocity_to_intensity(velocity[:, 1]),
  ], axis=-1)
  _write(stream, 'P3', pixels.reshape(height, width * 3), width, height)


def write_pgm(
    stream: TextIO,
    color: np.ndarray,
    width: int,
    height: int,
) -> None:
  """Writes a `P2` image of the color intensity."""
  color = np.asarray(color)
  _check(color, width, height)
  _write(stream, 'P2', to_intensity(color).reshape(height, width), width,
         height)


def write_frame(
    stream: TextIO,
    color: np.ndarray,
    width: int,
    height: int,
    velocity: Optional[np.ndarray] = None,
) -> None:
  """`write_ppm` when a velocity field is given, otherwise `write_pgm`."""
  if velocity is None:
    write_pgm(stream, color, width, height)
  else:
    write_ppm(stream, color, velocity, width, height)
