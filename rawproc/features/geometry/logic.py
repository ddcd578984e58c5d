from dataclasses import replace

import numpy as np

from rawproc.domain.errors import DimensionError
from rawproc.domain.images import BayerRgbImage
from rawproc.domain.models import Crop
from rawproc.domain.validation import expect_image
from rawproc.kernel.system.performance import time_function


@time_function
def crop(img: BayerRgbImage) -> BayerRgbImage:
    """
    Removes the sensor margins the camera masks off for black level and noise
    measurements, keeping only the image area.

    The CFA is re-phased by (left, top) so colour lookups stay correct in the
    new coordinate frame, and the crop is cleared so a second call is inert.
    """
    img = expect_image(img, BayerRgbImage)
    margins = img.metadata.crop
    if margins is None:
        return img

    if min(margins.top, margins.right, margins.bottom, margins.left) < 0:
        raise DimensionError(f"Crop margins must not be negative: {margins}")

    new_width = img.width - (margins.left + margins.right)
    new_height = img.height - (margins.top + margins.bottom)
    if new_width <= 0 or new_height <= 0:
        raise DimensionError(
            f"Crop {margins} leaves nothing of a {img.width}x{img.height} sensor"
        )

    data = np.ascontiguousarray(
        img.data[
            margins.top : margins.top + new_height,
            margins.left : margins.left + new_width,
        ]
    )
    metadata = replace(
        img.metadata,
        crop=None,
        cfa=img.metadata.cfa.shift(margins.left, margins.top),
    )
    return img.with_data(data, width=new_width, height=new_height, metadata=metadata)


@time_function
def subsample(img: BayerRgbImage, factor: int = 4) -> BayerRgbImage:
    """
    Builds a small sensor image for previews by keeping the top-left 2x2 CFA
    cell of every (2 * factor) x (2 * factor) block. The result is still a
    valid mosaic with the same CFA phase.

    Margins that have not been cropped yet are carried into the new frame,
    rounded outwards to whole CFA cells.
    """
    img = expect_image(img, BayerRgbImage)
    if factor < 1:
        raise ValueError(f"Subsample factor must be >= 1, got {factor}")

    if factor == 1:
        return img

    step = 2 * factor
    cells_y = img.height // step
    cells_x = img.width // step
    if cells_x == 0 or cells_y == 0:
        raise DimensionError(
            f"A {img.width}x{img.height} sensor is too small to subsample by {factor}"
        )

    data = np.empty((cells_y * 2, cells_x * 2), dtype=img.dtype)
    for oy in range(2):
        for ox in range(2):
            data[oy::2, ox::2] = img.data[
                oy : cells_y * step : step, ox : cells_x * step : step
            ]

    metadata = img.metadata
    margins = metadata.crop
    if margins is not None:
        metadata = replace(
            metadata,
            crop=Crop(
                top=_cells_covering(margins.top, step),
                right=_cells_covering(margins.right, step),
                bottom=_cells_covering(margins.bottom, step),
                left=_cells_covering(margins.left, step),
            ),
        )

    return img.with_data(data, width=cells_x * 2, height=cells_y * 2, metadata=metadata)


def _cells_covering(margin: int, step: int) -> int:
    return 2 * -(-margin // step)
