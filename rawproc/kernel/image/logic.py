"""
Numeric representation conversions (uint16 <-> float32 <-> uint8).

These carry no colorimetric meaning: they only move samples between fixed point
ranges and the normalized [0, 1] float range, using the same per-channel
whitelevel semantics as the colourspace stages.
"""

import hashlib
import os

import numpy as np

from rawproc.domain.images import BayerRgbImage, Image, ImageT


def sample_scales(img: Image) -> np.ndarray:
    """
    Full-scale value for every sample, broadcastable against img.data.

    Sensor images pick the whitelevel of each photosite's native channel;
    three component images use one value per channel.
    """
    scale = img.sample_scale()
    if isinstance(img, BayerRgbImage):
        colors = img.metadata.cfa.color_map(img.width, img.height)
        return scale[colors]
    return scale


def saturate_cast(arr: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """
    Casts to dtype, clamping to its representable range first.
    Float targets are passed through as float32.
    """
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.floating):
        return arr.astype(np.float32)
    info = np.iinfo(dtype)
    return np.clip(arr, info.min, info.max).astype(dtype)


def to_floats(img: ImageT) -> ImageT:
    """
    Normalizes fixed point samples into float32 [0, 1].
    """
    if img.is_float:
        return img.with_data(img.data.astype(np.float32))

    data = img.data.astype(np.float32) / sample_scales(img).astype(np.float32)
    return img.with_data(data.astype(np.float32))


def to_sixteen(img: ImageT) -> ImageT:
    """
    float32 [0, 1] -> uint16 in sensor units (multiplied by the whitelevels).
    """
    if not img.is_float:
        img = to_floats(img)

    levels = np.asarray(img.metadata.whitelevels, dtype=np.float64)
    if isinstance(img, BayerRgbImage):
        levels = levels[img.metadata.cfa.color_map(img.width, img.height)]

    data = np.clip(img.data, 0.0, 1.0) * levels
    return img.with_data(saturate_cast(data, np.uint16))


def to_bytes(img: ImageT) -> ImageT:
    """
    Converts to uint8 [0, 255].

    Integer input is normalized by channel 0's whitelevel for every channel.
    This is a known approximation: the three whitelevels are equal on every
    camera seen so far.
    """
    if img.dtype == np.uint8:
        return img

    if img.is_float:
        data = np.clip(img.data, 0.0, 1.0)
    else:
        data = np.clip(img.data / float(img.metadata.whitelevels[0]), 0.0, 1.0)

    return img.with_data((data * 255.0).astype(np.uint8))


def from_bytes(img: ImageT) -> ImageT:
    """
    uint8 [0, 255] -> float32 [0, 1].
    """
    if img.dtype != np.uint8:
        raise TypeError(f"Expected uint8 samples, got {img.dtype}")
    return img.with_data(img.data.astype(np.float32) / np.float32(255.0))


def float_to_uint16(buffer: np.ndarray) -> np.ndarray:
    """
    Plain [0, 1] float buffer to full range uint16, for 16-bit encoders.
    """
    return (np.clip(buffer, 0.0, 1.0) * 65535.0).astype(np.uint16)


def calculate_file_hash(file_path: str) -> str:
    """
    Fast fingerprint of a raw file: size plus the first and last megabyte.
    """
    file_size = os.path.getsize(file_path)
    hasher = hashlib.sha256()
    hasher.update(str(file_size).encode())

    with open(file_path, "rb") as f:
        hasher.update(f.read(1024 * 1024))

        if file_size > 2 * 1024 * 1024:
            f.seek(-1024 * 1024, os.SEEK_END)
            hasher.update(f.read(1024 * 1024))

    return hasher.hexdigest()
