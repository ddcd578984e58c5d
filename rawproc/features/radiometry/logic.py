from typing import Optional, Sequence

import numpy as np

from rawproc.domain.images import BayerRgbImage
from rawproc.domain.validation import expect_float, expect_image
from rawproc.kernel.image.logic import sample_scales, saturate_cast
from rawproc.kernel.system.performance import time_function


def _native_channel_values(img: BayerRgbImage, per_channel: Sequence[float]) -> np.ndarray:
    """
    Expands an (R, G, B) triplet to one value per photosite following the CFA.
    """
    colors = img.metadata.cfa.color_map(img.width, img.height)
    return np.asarray(per_channel, dtype=np.float64)[colors]


@time_function
def black_levels(
    img: BayerRgbImage, levels: Optional[Sequence[float]] = None
) -> BayerRgbImage:
    """
    Subtracts the sensor's dark-frame baseline per native channel, never going below zero.

    `levels` are in sensor units (the same units as the whitelevels) and default
    to the camera's own black levels. Float images are handled by scaling the
    offsets into their [0, 1] range.
    """
    img = expect_image(img, BayerRgbImage)
    if levels is None:
        levels = img.metadata.blacklevels

    sensor_units = _native_channel_values(img, img.metadata.whitelevels)
    offsets = _native_channel_values(img, levels) * (sample_scales(img) / sensor_units)

    data = np.maximum(img.data.astype(np.float64) - offsets, 0.0)
    return img.with_data(saturate_cast(data, img.dtype))


@time_function
def white_balance(
    img: BayerRgbImage, coefficients: Optional[Sequence[float]] = None
) -> BayerRgbImage:
    """
    Scales each photosite by its native channel's coefficient, clamped into the valid range.

    If `coefficients` is None the camera's as-shot multipliers are used,
    normalized so that green is 1.0.
    """
    img = expect_image(img, BayerRgbImage)
    if coefficients is None:
        coefficients = img.metadata.normalized_whitebalance()

    gains = _native_channel_values(img, coefficients)
    data = np.clip(img.data.astype(np.float64) * gains, 0.0, sample_scales(img))
    return img.with_data(saturate_cast(data, img.dtype))


@time_function
def exposure(img: BayerRgbImage, ev: float) -> BayerRgbImage:
    """
    Adjusts exposure in stops: +1 doubles the light, -1 halves it.
    Results are clipped at full scale (1.0, or the whitelevel for integer data).
    """
    img = expect_image(img, BayerRgbImage)
    if ev == 0.0:
        return img

    data = np.clip(img.data.astype(np.float64) * 2.0**ev, 0.0, sample_scales(img))
    return img.with_data(saturate_cast(data, img.dtype))


def simple_gamma(img: BayerRgbImage, value: float) -> BayerRgbImage:
    """
    Plain power-law gamma on the sensor image.

    Only meant for quick previews that skip the colourspace pipeline, which
    applies the proper sRGB transfer function itself.
    """
    img = expect_image(img, BayerRgbImage)
    expect_float(img)
    if value <= 0.0:
        raise ValueError(f"Gamma must be positive, got {value}")

    data = np.clip(np.power(np.maximum(img.data, 0.0), 1.0 / value), 0.0, 1.0)
    return img.with_data(data.astype(np.float32))
