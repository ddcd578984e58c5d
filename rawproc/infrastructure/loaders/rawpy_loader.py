from typing import Any, ContextManager, Sequence, Tuple, cast

import numpy as np
import rawpy

from rawproc.domain.errors import CalibrationError, UnsupportedInputError
from rawproc.domain.images import BayerRgbImage
from rawproc.domain.interfaces import IImageLoader
from rawproc.domain.models import Cfa, Color, Crop, RawMetadata
from rawproc.domain.types import Matrix3
from rawproc.infrastructure.loaders.constants import BAYER_COLOR_LETTERS
from rawproc.kernel.system.logging import get_logger

logger = get_logger(__name__)


def _color_desc(raw: Any) -> str:
    desc = raw.color_desc
    if isinstance(desc, bytes):
        desc = desc.decode("ascii")
    return str(desc)


def _channel_indices(desc: str) -> Tuple[int, int, int]:
    """
    Decoder colour index of the first R, G and B entry in the colour description.
    """
    try:
        return desc.index("R"), desc.index("G"), desc.index("B")
    except ValueError:
        raise UnsupportedInputError(f"Not an RGB Bayer sensor: colours '{desc}'")


def _pick(values: Sequence[float], indices: Tuple[int, int, int]) -> Tuple[float, float, float]:
    return float(values[indices[0]]), float(values[indices[1]]), float(values[indices[2]])


def _cfa(raw: Any, desc: str) -> Cfa:
    pattern = np.asarray(raw.raw_pattern)
    if pattern.shape != (2, 2):
        raise UnsupportedInputError(
            f"Only 2x2 Bayer sensors are supported, got a {pattern.shape} pattern"
        )

    colors = []
    for row in pattern:
        letters = []
        for idx in row:
            letter = desc[int(idx)]
            if letter not in BAYER_COLOR_LETTERS:
                raise UnsupportedInputError(f"Unsupported filter colour '{letter}'")
            letters.append(Color(BAYER_COLOR_LETTERS[letter]))
        colors.append(letters)
    return Cfa.from_pattern(colors)


def _crop(raw: Any) -> Any:
    s = raw.sizes
    bottom = s.raw_height - s.top_margin - s.height
    right = s.raw_width - s.left_margin - s.width
    return Crop.from_css_quad((s.top_margin, right, bottom, s.left_margin))


def _whitelevels(raw: Any, indices: Tuple[int, int, int]) -> Tuple[int, int, int]:
    per_channel = getattr(raw, "camera_white_level_per_channel", None)
    if per_channel is not None and all(v > 0 for v in per_channel):
        r, g, b = _pick(per_channel, indices)
        return int(r), int(g), int(b)
    level = int(raw.white_level)
    return level, level, level


def _whitebalance(raw: Any, indices: Tuple[int, int, int]) -> Tuple[float, float, float]:
    wb = _pick(raw.camera_whitebalance, indices)
    if wb[1] > 0.0:
        return wb

    daylight = _pick(raw.daylight_whitebalance, indices)
    if daylight[1] > 0.0:
        logger.warning("No as-shot white balance, using daylight multipliers")
        return daylight

    logger.warning("No white balance in file, leaving channels unscaled")
    return 1.0, 1.0, 1.0


def cam_to_xyz_from_raw(xyz_to_cam: np.ndarray, indices: Tuple[int, int, int]) -> Matrix3:
    """
    Camera RGB -> XYZ, the inverse of the decoder's XYZ -> camera matrix with
    each row normalized to sum to 1 (so that XYZ white maps to camera white).
    """
    matrix = np.asarray(xyz_to_cam, dtype=np.float64)[list(indices), :3]
    if not np.any(matrix):
        logger.warning("Camera has no colour matrix, assuming identity")
        return np.eye(3)

    sums = matrix.sum(axis=1, keepdims=True)
    if np.any(sums == 0.0):
        raise CalibrationError(f"Colour matrix has a zero row sum: {sums.ravel()}")

    try:
        return np.linalg.inv(matrix / sums)
    except np.linalg.LinAlgError as e:
        raise CalibrationError(f"Colour matrix is singular: {e}") from e


def bayer_image_from_raw(raw: Any) -> BayerRgbImage:
    """
    Builds a BayerRgbImage from an open rawpy object.
    The full sensor is kept; the visible area is recorded as a crop.
    """
    if getattr(raw, "raw_type", None) == rawpy.RawType.Stack:
        raise UnsupportedInputError("Stacked (non mosaiced) sensor data is not supported")

    data = np.asarray(raw.raw_image)
    if not np.issubdtype(data.dtype, np.integer):
        raise UnsupportedInputError(f"Floating point sensor data ({data.dtype}) is not supported")
    if data.ndim != 2:
        raise UnsupportedInputError(f"Expected a single channel sensor, got shape {data.shape}")

    desc = _color_desc(raw)
    indices = _channel_indices(desc)

    black = _pick(raw.black_level_per_channel, indices)
    metadata = RawMetadata(
        whitebalance=_whitebalance(raw, indices),
        whitelevels=_whitelevels(raw, indices),
        blacklevels=(int(black[0]), int(black[1]), int(black[2])),
        crop=_crop(raw),
        cfa=_cfa(raw, desc),
        cam_to_xyz=cam_to_xyz_from_raw(raw.rgb_xyz_matrix, indices),
    )

    height, width = data.shape
    logger.debug(
        f"Decoded {width}x{height} sensor, CFA {metadata.cfa.name}, "
        f"whitelevels {metadata.whitelevels}, blacklevels {metadata.blacklevels}"
    )
    return BayerRgbImage(
        width=width,
        height=height,
        data=data.astype(np.uint16, copy=True),
        metadata=metadata,
    )


class RawpyLoader(IImageLoader):
    """
    Loader for digital raw files (DNG, CR2, NEF, etc.) backed by LibRaw.
    """

    def load(self, file_path: str) -> ContextManager[Any]:
        try:
            return cast(ContextManager[Any], rawpy.imread(file_path))
        except rawpy.LibRawError as e:
            raise UnsupportedInputError(f"Cannot decode {file_path}: {e}") from e

    def decode(self, file_path: str) -> BayerRgbImage:
        with self.load(file_path) as raw:
            return bayer_image_from_raw(raw)
