import io

import numpy as np
import pytest
import tifffile
from PIL import Image as PILImage

from rawproc.domain.images import LinSrgbImage, SrgbImage
from rawproc.domain.models import ExportConfig, ExportFormat, RawMetadata
from rawproc.services.export.encoder import encode, extension_for
from rawproc.services.export.templating import (
    FilenameTemplater,
    render_export_filename,
    unique_output_path,
)


@pytest.fixture
def srgb():
    data = np.linspace(0.0, 1.0, 4 * 5 * 3, dtype=np.float32).reshape(4, 5, 3)
    return SrgbImage(width=5, height=4, data=data, metadata=RawMetadata())


def test_png_is_lossless_8bit(srgb):
    bits = encode(srgb, ExportFormat.PNG)
    decoded = np.asarray(PILImage.open(io.BytesIO(bits)))

    assert decoded.shape == (4, 5, 3)
    assert np.array_equal(decoded, (srgb.data * 255.0).astype(np.uint8))


def test_jpeg_and_webp(srgb):
    assert encode(srgb, "JPEG", quality=80)[:2] == b"\xff\xd8"
    webp = encode(srgb, ExportFormat.WEBP)
    assert PILImage.open(io.BytesIO(webp)).size == (5, 4)


def test_tiff_is_16bit(srgb):
    decoded = tifffile.imread(io.BytesIO(encode(srgb, ExportFormat.TIFF)))
    assert decoded.dtype == np.uint16
    assert decoded.shape == (4, 5, 3)
    assert decoded[-1, -1, -1] == 65535


def test_encode_requires_srgb(srgb):
    linear = srgb.with_data(srgb.data, target=LinSrgbImage)
    with pytest.raises(TypeError):
        encode(linear, ExportFormat.PNG)
    with pytest.raises(ValueError):
        encode(srgb, "BMP")


def test_extensions():
    assert extension_for("JPEG") == "jpg"
    assert extension_for(ExportFormat.TIFF) == "tiff"


def test_templater():
    templater = FilenameTemplater()
    assert templater.render("{{ original_name }}_dev", {"original_name": "IMG_001"}) == "IMG_001_dev"
    # Broken and empty templates fall back to the source name
    assert templater.render("{{ original_name ", {"original_name": "IMG_001"}) == "IMG_001"
    assert templater.render("   ", {"original_name": "IMG_001"}) == "IMG_001"


def test_render_export_filename():
    export = ExportConfig(export_fmt="PNG", filename_pattern="{{ original_name }}.{{ format }}")
    assert render_export_filename("/raws/DSC_0042.NEF", export) == "DSC_0042.png"


def test_unique_output_path(tmp_path):
    first = unique_output_path(str(tmp_path), "IMG", "jpg")
    assert first == str(tmp_path / "IMG.jpg")

    (tmp_path / "IMG.jpg").write_bytes(b"x")
    (tmp_path / "IMG_1.jpg").write_bytes(b"x")
    assert unique_output_path(str(tmp_path), "IMG", "jpg") == str(tmp_path / "IMG_2.jpg")
