from typing import Tuple

import numpy as np

from rawproc.domain.images import GrayImage, HsvImage, Image, SrgbImage
from rawproc.domain.validation import expect_float, expect_image
from rawproc.kernel.image.logic import saturate_cast
from rawproc.kernel.system.logging import get_logger
from rawproc.kernel.system.performance import time_function

logger = get_logger(__name__)


def _normalized(img: Image) -> Tuple[np.ndarray, np.ndarray]:
    scale = img.sample_scale().astype(np.float32)
    return img.data.astype(np.float32) / scale, scale


@time_function
def contrast(img: SrgbImage, factor: float) -> SrgbImage:
    """
    Pushes samples away from (factor > 1) or towards (factor < 1) mid grey.
    """
    img = expect_image(img, SrgbImage)
    if factor == 1.0:
        return img

    data, scale = _normalized(img)
    res = np.clip((data - 0.5) * np.float32(factor) + 0.5, 0.0, 1.0)
    return img.with_data(saturate_cast(res * scale, img.dtype))


@time_function
def autolevel(img: SrgbImage) -> SrgbImage:
    """
    Stretches the image so that its largest component reaches full scale.
    """
    img = expect_image(img, SrgbImage)
    data, scale = _normalized(img)

    peak = float(np.max(data))
    if peak <= 0.0:
        logger.warning("Autolevel skipped: image is entirely black")
        return img

    logger.debug(f"Autolevel peak: {peak:.5f}")
    return img.with_data(saturate_cast(data / np.float32(peak) * scale, img.dtype))


def pixel_rgb_to_hsv(r: float, g: float, b: float) -> Tuple[float, float, float]:
    value = max(r, g, b)
    chroma = value - min(r, g, b)

    if chroma == 0.0:
        hue = 0.0
    elif value == r:
        hue = 60.0 * ((g - b) / chroma)
    elif value == g:
        hue = 60.0 * (2.0 + (b - r) / chroma)
    else:
        hue = 60.0 * (4.0 + (r - g) / chroma)

    saturation = 0.0 if value == 0.0 else chroma / value
    return (hue + 360.0) % 360.0, saturation, value


def pixel_hsv_to_rgb(hue: float, saturation: float, value: float) -> Tuple[float, float, float]:
    """
    Inverse of pixel_rgb_to_hsv. Sector upper bounds are inclusive.
    """
    chroma = value * saturation
    hue_prime = hue / 60.0
    x = chroma * (1.0 - abs(hue_prime % 2.0 - 1.0))

    m = value - chroma
    cm = chroma + m
    xm = x + m

    if 0.0 <= hue_prime <= 1.0:
        return cm, xm, m
    if 1.0 < hue_prime <= 2.0:
        return xm, cm, m
    if 2.0 < hue_prime <= 3.0:
        return m, cm, xm
    if 3.0 < hue_prime <= 4.0:
        return m, xm, cm
    if 4.0 < hue_prime <= 5.0:
        return xm, m, cm
    if 5.0 < hue_prime <= 6.0:
        return cm, m, xm

    raise ValueError(f"Hue out of range: {hue}")


def rgb_array_to_hsv(rgb: np.ndarray) -> np.ndarray:
    """
    Vectorized pixel_rgb_to_hsv over an (..., 3) float array in [0, 1].
    """
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    value = np.max(rgb, axis=-1)
    chroma = value - np.min(rgb, axis=-1)
    safe = np.where(chroma == 0.0, 1.0, chroma)

    hue = np.select(
        [chroma == 0.0, value == r, value == g],
        [0.0, 60.0 * ((g - b) / safe), 60.0 * (2.0 + (b - r) / safe)],
        default=60.0 * (4.0 + (r - g) / safe),
    )
    saturation = np.where(value == 0.0, 0.0, chroma / np.where(value == 0.0, 1.0, value))

    return np.stack([(hue + 360.0) % 360.0, saturation, value], axis=-1)


def hsv_array_to_rgb(hsv: np.ndarray) -> np.ndarray:
    """
    Vectorized pixel_hsv_to_rgb over an (..., 3) array.
    """
    hue, saturation, value = hsv[..., 0], hsv[..., 1], hsv[..., 2]
    chroma = value * saturation
    hue_prime = hue / 60.0

    in_range = (hue_prime >= 0.0) & (hue_prime <= 6.0)
    if not np.all(in_range):
        bad = hue[~in_range].flat[0]
        raise ValueError(f"Hue out of range: {bad}")

    x = chroma * (1.0 - np.abs(np.mod(hue_prime, 2.0) - 1.0))

    m = value - chroma
    cm = chroma + m
    xm = x + m

    # ceil keeps each sector's upper bound inclusive, 0 folds into the first one
    sector = np.clip(np.ceil(hue_prime) - 1, 0, 5).astype(np.int8)
    r = np.choose(sector, [cm, xm, m, m, xm, cm])
    g = np.choose(sector, [xm, cm, cm, xm, m, m])
    b = np.choose(sector, [m, m, xm, cm, cm, xm])

    return np.stack([r, g, b], axis=-1)


@time_function
def rgb_to_hsv(img: SrgbImage) -> HsvImage:
    img = expect_image(img, SrgbImage)
    data, _ = _normalized(img)
    return img.with_data(rgb_array_to_hsv(data).astype(np.float32), target=HsvImage)


@time_function
def hsv_to_rgb(img: HsvImage) -> SrgbImage:
    """
    Returns float32 sRGB in [0, 1].
    """
    img = expect_image(img, HsvImage)
    expect_float(img)
    return img.with_data(hsv_array_to_rgb(img.data).astype(np.float32), target=SrgbImage)


def saturation(img: HsvImage, scalar: float) -> HsvImage:
    img = expect_image(img, HsvImage)
    data = img.data.copy()
    data[..., 1] = np.clip(data[..., 1] * scalar, 0.0, 1.0)
    return img.with_data(data)


def hue_shift(img: HsvImage, degrees: float) -> HsvImage:
    """
    Rotates the hue wheel, wrapping into [0, 360).
    """
    img = expect_image(img, HsvImage)
    data = img.data.copy()
    data[..., 0] = np.mod(data[..., 0] + degrees, 360.0)
    return img.with_data(data)


def brightness(img: HsvImage, value: float) -> HsvImage:
    img = expect_image(img, HsvImage)
    data = img.data.copy()
    data[..., 2] = np.clip(data[..., 2] + value, 0.0, 1.0)
    return img.with_data(data)


@time_function
def to_gray(img: SrgbImage) -> GrayImage:
    """
    Plain mean of the three components, no luminance weighting.
    """
    img = expect_image(img, SrgbImage)
    gray = np.mean(img.data.astype(np.float64), axis=-1)
    return img.with_data(saturate_cast(gray, img.dtype), target=GrayImage)


def gray_to_srgb(img: GrayImage) -> SrgbImage:
    img = expect_image(img, GrayImage)
    data = np.repeat(img.data[..., np.newaxis], 3, axis=-1)
    return img.with_data(data, target=SrgbImage)
