from typing import Optional, Union

import numpy as np
from numba import njit, prange  # type: ignore

from rawproc.domain.errors import DimensionError
from rawproc.domain.images import BayerRgbImage, LinRgbImage
from rawproc.domain.types import ImageBuffer, SensorBuffer
from rawproc.domain.validation import expect_image
from rawproc.features.demosaic.models import Interpolation
from rawproc.features.demosaic.random import RollingRandom
from rawproc.kernel.image.logic import saturate_cast
from rawproc.kernel.system.performance import time_function


@njit
def _nearest_neighbor_jit(
    bayer: np.ndarray,
    pattern: np.ndarray,
    rgb: np.ndarray,
    values: np.ndarray,
    index: int,
) -> int:
    """
    Copies each missing channel from one same-coloured neighbour.

    Two coin flips per missing channel choose top/bottom and left/right; on a
    border the only existing side is used without consuming a flip. Green at a
    red or blue site has both a vertical and a horizontal candidate, a third
    flip picks one. Returns the randomizer position after the last flip.
    """
    h, w = bayer.shape
    n = values.shape[0]
    for y in range(h):
        for x in range(w):
            native = pattern[y & 1, x & 1]
            rgb[y, x, native] = bayer[y, x]

            for color in range(3):
                if color == native:
                    continue

                if y == 0:
                    cy = 1
                elif y == h - 1:
                    cy = y - 1
                else:
                    cy = y - 1 if values[index] % 2 == 0 else y + 1
                    index = (index + 1) % n

                if x == 0:
                    cx = 1
                elif x == w - 1:
                    cx = x - 1
                else:
                    cx = x - 1 if values[index] % 2 == 0 else x + 1
                    index = (index + 1) % n

                vertical = pattern[cy & 1, x & 1] == color
                horizontal = pattern[y & 1, cx & 1] == color

                if vertical and horizontal:
                    if values[index] % 2 == 0:
                        rgb[y, x, color] = bayer[cy, x]
                    else:
                        rgb[y, x, color] = bayer[y, cx]
                    index = (index + 1) % n
                elif vertical:
                    rgb[y, x, color] = bayer[cy, x]
                elif horizontal:
                    rgb[y, x, color] = bayer[y, cx]
                else:
                    rgb[y, x, color] = bayer[cy, cx]
    return index


@njit(parallel=True)
def _bilinear_jit(bayer: np.ndarray, pattern: np.ndarray, rgb: np.ndarray) -> None:
    """
    Averages every same-coloured photosite of the 8-neighbourhood.

    Divisors follow what is actually in bounds: green at a red site averages
    4 neighbours inside, 3 on an edge and 2 in a corner; the diagonal blue
    averages 4, 2 and 1.
    """
    h, w = bayer.shape
    for y in prange(h):
        for x in range(w):
            s0 = 0.0
            s1 = 0.0
            s2 = 0.0
            n0 = 0
            n1 = 0
            n2 = 0
            for dy in range(-1, 2):
                ny = y + dy
                if ny < 0 or ny >= h:
                    continue
                for dx in range(-1, 2):
                    nx = x + dx
                    if (dx == 0 and dy == 0) or nx < 0 or nx >= w:
                        continue
                    c = pattern[ny & 1, nx & 1]
                    v = bayer[ny, nx]
                    if c == 0:
                        s0 += v
                        n0 += 1
                    elif c == 1:
                        s1 += v
                        n1 += 1
                    else:
                        s2 += v
                        n2 += 1

            if n0 > 0:
                rgb[y, x, 0] = s0 / n0
            if n1 > 0:
                rgb[y, x, 1] = s1 / n1
            if n2 > 0:
                rgb[y, x, 2] = s2 / n2

            # Native channel is copied through untouched
            rgb[y, x, pattern[y & 1, x & 1]] = bayer[y, x]


def _place_native(bayer: SensorBuffer, colors: np.ndarray) -> ImageBuffer:
    h, w = bayer.shape
    rgb = np.zeros((h, w, 3), dtype=bayer.dtype)
    rows = np.arange(h)[:, None]
    cols = np.arange(w)[None, :]
    rgb[rows, cols, colors] = bayer
    return rgb


@time_function
def demosaic(
    img: BayerRgbImage,
    interpolation: Union[Interpolation, str] = Interpolation.BILINEAR,
    rng: Optional[RollingRandom] = None,
) -> LinRgbImage:
    """
    Reconstructs the two missing channels at every photosite.

    Float sensor data is recommended. Integer data is interpolated in float
    and cast back to its own dtype.
    """
    img = expect_image(img, BayerRgbImage)
    method = Interpolation(interpolation)

    if img.width < 2 or img.height < 2:
        raise DimensionError(
            f"Demosaic needs at least one full 2x2 CFA cell, got {img.width}x{img.height}"
        )

    cfa = img.metadata.cfa
    bayer = np.ascontiguousarray(img.data, dtype=np.float32)

    if method is Interpolation.NONE:
        rgb = _place_native(bayer, cfa.color_map(img.width, img.height))
    elif method is Interpolation.NEAREST_NEIGHBOR:
        rng = rng or RollingRandom()
        rgb = np.zeros((img.height, img.width, 3), dtype=np.float32)
        rng.index = int(_nearest_neighbor_jit(bayer, cfa.pattern(), rgb, rng.values, rng.index))
    else:
        rgb = np.zeros((img.height, img.width, 3), dtype=np.float32)
        _bilinear_jit(bayer, cfa.pattern(), rgb)

    return img.with_data(saturate_cast(rgb, img.dtype), target=LinRgbImage)
