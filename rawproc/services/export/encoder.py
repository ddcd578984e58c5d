import io

import numpy as np
import tifffile
from PIL import Image as PILImage

from rawproc.domain.images import SrgbImage
from rawproc.domain.models import ExportFormat
from rawproc.domain.validation import expect_image
from rawproc.kernel.image.logic import float_to_uint16, to_bytes, to_floats

FILE_EXTENSIONS = {
    ExportFormat.JPEG: "jpg",
    ExportFormat.PNG: "png",
    ExportFormat.WEBP: "webp",
    ExportFormat.TIFF: "tiff",
}


def extension_for(fmt: ExportFormat | str) -> str:
    return FILE_EXTENSIONS[ExportFormat(fmt)]


def encode(img: SrgbImage, fmt: ExportFormat | str, quality: int = 95) -> bytes:
    """
    Encodes a finished sRGB image.

    JPEG, PNG and WebP are written 8 bits per channel with Pillow. TIFF keeps
    16 bits per channel and is written with tifffile.
    """
    img = expect_image(img, SrgbImage)
    fmt = ExportFormat(fmt)
    output_buf = io.BytesIO()

    if fmt is ExportFormat.TIFF:
        img_int = float_to_uint16(to_floats(img).data)
        tifffile.imwrite(
            output_buf,
            img_int,
            photometric="rgb",
            compression="zlib",
        )
        return output_buf.getvalue()

    img_int = np.ascontiguousarray(to_bytes(img).data)
    pil_img = PILImage.fromarray(img_int)
    if fmt is ExportFormat.PNG:
        pil_img.save(output_buf, format="PNG")
    else:
        pil_img.save(output_buf, format=fmt.value, quality=quality)
    return output_buf.getvalue()
