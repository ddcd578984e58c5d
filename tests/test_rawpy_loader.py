from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import rawpy

from rawproc.domain.errors import CalibrationError, UnsupportedInputError
from rawproc.domain.images import BayerRgbImage
from rawproc.domain.models import Crop
from rawproc.infrastructure.loaders.rawpy_loader import (
    RawpyLoader,
    bayer_image_from_raw,
    cam_to_xyz_from_raw,
)


def _fake_raw(**overrides):
    raw = SimpleNamespace(
        raw_type=rawpy.RawType.Flat,
        raw_image=np.arange(48, dtype=np.uint16).reshape(6, 8),
        color_desc=b"RGBG",
        raw_pattern=np.array([[0, 1], [3, 2]]),
        sizes=SimpleNamespace(
            raw_height=6, raw_width=8, height=4, width=6, top_margin=1, left_margin=2
        ),
        black_level_per_channel=[64, 65, 66, 65],
        camera_whitebalance=[2.0, 1.0, 1.5, 1.0],
        daylight_whitebalance=[2.1, 1.0, 1.4, 0.0],
        white_level=4095,
        camera_white_level_per_channel=None,
        rgb_xyz_matrix=np.zeros((4, 3)),
    )
    for key, value in overrides.items():
        setattr(raw, key, value)
    return raw


def test_decodes_sensor_and_calibration():
    img = bayer_image_from_raw(_fake_raw())

    assert isinstance(img, BayerRgbImage)
    assert (img.width, img.height) == (8, 6)
    assert img.dtype == np.uint16
    meta = img.metadata
    assert meta.cfa.name == "RGGB"
    assert meta.crop == Crop(top=1, right=0, bottom=1, left=2)
    assert meta.blacklevels == (64, 65, 66)
    assert meta.whitelevels == (4095, 4095, 4095)
    assert meta.whitebalance == (2.0, 1.0, 1.5)
    assert np.array_equal(meta.cam_to_xyz, np.eye(3))


def test_decodes_shifted_cfa():
    img = bayer_image_from_raw(_fake_raw(raw_pattern=np.array([[2, 3], [1, 0]])))
    assert img.metadata.cfa.name == "BGGR"


def test_per_channel_whitelevels():
    img = bayer_image_from_raw(_fake_raw(camera_white_level_per_channel=[4000, 4095, 3900, 4095]))
    assert img.metadata.whitelevels == (4000, 4095, 3900)


def test_missing_whitebalance_falls_back_to_daylight():
    img = bayer_image_from_raw(_fake_raw(camera_whitebalance=[0.0, 0.0, 0.0, 0.0]))
    assert img.metadata.whitebalance == (2.1, 1.0, 1.4)


def test_sensor_is_copied():
    raw = _fake_raw()
    img = bayer_image_from_raw(raw)
    raw.raw_image[0, 0] = 999
    assert img.data[0, 0] == 0


def test_rejects_unsupported_sensors():
    with pytest.raises(UnsupportedInputError):
        bayer_image_from_raw(_fake_raw(raw_image=np.zeros((6, 8), dtype=np.float32)))
    with pytest.raises(UnsupportedInputError):
        bayer_image_from_raw(_fake_raw(raw_pattern=np.zeros((6, 6), dtype=int)))
    with pytest.raises(UnsupportedInputError):
        bayer_image_from_raw(_fake_raw(color_desc=b"CMYG"))
    with pytest.raises(UnsupportedInputError):
        bayer_image_from_raw(_fake_raw(raw_type=rawpy.RawType.Stack))


def test_cam_to_xyz_inverts_normalized_matrix():
    xyz_to_cam = np.array(
        [[0.7, 0.2, 0.1], [0.3, 0.6, 0.1], [0.05, 0.15, 0.8], [0.3, 0.6, 0.1]]
    ) * 3.0
    cam_to_xyz = cam_to_xyz_from_raw(xyz_to_cam, (0, 1, 2))

    normalized = xyz_to_cam[:3] / xyz_to_cam[:3].sum(axis=1, keepdims=True)
    assert np.allclose(cam_to_xyz @ normalized, np.eye(3))
    # Camera white maps back to equal-energy XYZ
    assert np.allclose(cam_to_xyz @ np.ones(3), np.ones(3))


def test_cam_to_xyz_errors():
    singular = np.array([[1.0, 1.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    with pytest.raises(CalibrationError):
        cam_to_xyz_from_raw(singular, (0, 1, 2))

    zero_row = np.array([[1.0, -1.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    with pytest.raises(CalibrationError):
        cam_to_xyz_from_raw(zero_row, (0, 1, 2))


def test_loader_decode_uses_rawpy():
    context = MagicMock()
    context.__enter__.return_value = _fake_raw()
    with patch("rawproc.infrastructure.loaders.rawpy_loader.rawpy.imread", return_value=context) as imread:
        img = RawpyLoader().decode("photo.dng")

    imread.assert_called_once_with("photo.dng")
    assert img.metadata.cfa.name == "RGGB"
