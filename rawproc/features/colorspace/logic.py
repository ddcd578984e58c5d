from typing import Any

import numpy as np
from numba import njit, prange  # type: ignore

from rawproc.domain.errors import CalibrationError
from rawproc.domain.images import (
    Image,
    LinRgbImage,
    LinSrgbImage,
    SrgbImage,
    XyzImage,
)
from rawproc.domain.types import Matrix3
from rawproc.domain.validation import expect_image
from rawproc.features.colorspace.constants import (
    BRADFORD,
    BRADFORD_INV,
    BRUCE_XYZ_TO_SRGB,
    SRGB_A,
    SRGB_ENCODED_CUTOFF,
    SRGB_GAMMA,
    SRGB_LINEAR_CUTOFF,
    SRGB_LINEAR_SLOPE,
    XYZ_TO_SRGB,
)
from rawproc.kernel.image.logic import saturate_cast
from rawproc.kernel.system.logging import get_logger
from rawproc.kernel.system.performance import time_function

logger = get_logger(__name__)


@njit(parallel=True)
def _apply_matrix_jit(img: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Fast JIT application of a 3x3 matrix to every pixel.
    """
    h, w, c = img.shape
    res = np.empty_like(img)
    for y in prange(h):
        for x in range(w):
            r = img[y, x, 0]
            g = img[y, x, 1]
            b = img[y, x, 2]
            res[y, x, 0] = r * matrix[0, 0] + g * matrix[0, 1] + b * matrix[0, 2]
            res[y, x, 1] = r * matrix[1, 0] + g * matrix[1, 1] + b * matrix[1, 2]
            res[y, x, 2] = r * matrix[2, 0] + g * matrix[2, 1] + b * matrix[2, 2]
    return res


def _transform(img: Image, matrix: Matrix3) -> np.ndarray:
    """
    Normalizes by the per-channel scale, applies the matrix and scales back.
    """
    scale = img.sample_scale().astype(np.float32)
    normalized = np.ascontiguousarray(img.data, dtype=np.float32) / scale
    res = _apply_matrix_jit(normalized, np.asarray(matrix, dtype=np.float32))
    return saturate_cast(res * scale, img.dtype)


def srgb_gamma(values: Any) -> Any:
    """
    sRGB transfer function: linear light in, encoded value out, clamped to [0, 1].
    """
    v = np.asarray(values, dtype=np.float64)
    encoded = np.where(
        v <= SRGB_LINEAR_CUTOFF,
        v * SRGB_LINEAR_SLOPE,
        (1.0 + SRGB_A) * np.power(np.maximum(v, SRGB_LINEAR_CUTOFF), 1.0 / SRGB_GAMMA)
        - SRGB_A,
    )
    return np.clip(encoded, 0.0, 1.0)


def srgb_gamma_inverse(values: Any) -> Any:
    """
    Exact inverse of srgb_gamma on [0, 1].
    """
    v = np.asarray(values, dtype=np.float64)
    return np.where(
        v <= SRGB_ENCODED_CUTOFF,
        v / SRGB_LINEAR_SLOPE,
        np.power((np.maximum(v, SRGB_ENCODED_CUTOFF) + SRGB_A) / (1.0 + SRGB_A), SRGB_GAMMA),
    )


def _unit(vector: np.ndarray, what: str) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0 or not np.isfinite(norm):
        raise CalibrationError(f"{what} reference white is degenerate: {vector}")
    return vector / norm


def camera_reference_white(cam_to_xyz: Matrix3) -> np.ndarray:
    """
    XYZ coordinate the camera records for equal-energy (1, 1, 1) RGB, unit length.
    """
    return _unit(np.asarray(cam_to_xyz, dtype=np.float64) @ np.ones(3), "Camera")


def srgb_reference_white() -> np.ndarray:
    """
    D65 as implied by the XYZ -> sRGB matrix, unit length.
    """
    return _unit(np.linalg.inv(XYZ_TO_SRGB) @ np.ones(3), "sRGB")


def chromatic_adaptation_matrix(cam_to_xyz: Matrix3) -> Matrix3:
    """
    Bradford adaptation from the camera's reference white to sRGB's.

    Both whites are taken into cone response space, scaled by the per-cone
    ratio and brought back.
    """
    cam_cones = BRADFORD @ camera_reference_white(cam_to_xyz)
    srgb_cones = BRADFORD @ srgb_reference_white()

    if np.any(np.abs(cam_cones) < 1e-12):
        raise CalibrationError(f"Camera white has a zero cone response: {cam_cones}")

    scaling = np.diag(srgb_cones / cam_cones)
    return BRADFORD_INV @ scaling @ BRADFORD


@time_function
def linrgb_to_xyz(img: LinRgbImage) -> XyzImage:
    """
    Camera RGB -> XYZ with the camera's own calibration matrix.
    The result is device independent but not yet adapted to any white.
    """
    img = expect_image(img, LinRgbImage)
    data = _transform(img, img.metadata.cam_to_xyz)
    return img.with_data(data, target=XyzImage)


@time_function
def xyz_to_linsrgb(img: XyzImage) -> LinSrgbImage:
    """
    Chromatic adaptation to D65 followed by the XYZ -> sRGB primaries.
    """
    img = expect_image(img, XyzImage)
    adaptation = chromatic_adaptation_matrix(img.metadata.cam_to_xyz)
    logger.debug(f"Chromatic adaptation matrix:\n{adaptation}")

    data = _transform(img, BRUCE_XYZ_TO_SRGB @ adaptation)
    return img.with_data(data, target=LinSrgbImage)


@time_function
def linsrgb_to_srgb(img: LinSrgbImage) -> SrgbImage:
    """
    Applies the sRGB transfer function.

    Every channel is normalized by channel 0's scale. For integer data this
    approximates the per-channel whitelevels with the red one.
    """
    img = expect_image(img, LinSrgbImage)
    scale = float(img.sample_scale()[0])

    encoded = srgb_gamma(img.data.astype(np.float64) / scale) * scale
    return img.with_data(saturate_cast(encoded, img.dtype), target=SrgbImage)


def to_srgb(img: LinRgbImage) -> SrgbImage:
    """
    The full colourspace chain, in its only valid order.
    """
    return linsrgb_to_srgb(xyz_to_linsrgb(linrgb_to_xyz(img)))
