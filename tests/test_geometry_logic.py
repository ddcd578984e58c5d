import numpy as np
import pytest

from rawproc.domain.errors import DimensionError
from rawproc.domain.interfaces import PipelineContext
from rawproc.domain.images import LinRgbImage
from rawproc.domain.models import Cfa, Crop, RawMetadata
from rawproc.features.geometry.logic import crop, subsample
from rawproc.features.geometry.models import GeometryConfig
from rawproc.features.geometry.processor import GeometryProcessor


def test_crop_trims_margins(make_bayer):
    data = np.arange(48, dtype=np.uint16).reshape(6, 8)
    img = make_bayer(data, crop=Crop(top=1, right=2, bottom=1, left=1))

    res = crop(img)

    assert (res.width, res.height) == (5, 4)
    assert np.array_equal(res.data, data[1:5, 1:6])
    assert res.metadata.crop is None


def test_crop_keeps_colour_lookup(make_bayer):
    img = make_bayer(np.zeros((6, 6), dtype=np.uint16), crop=Crop(top=1, right=0, bottom=0, left=1))
    res = crop(img)

    old, new = img.metadata.cfa, res.metadata.cfa
    assert new.name == "BGGR"
    for y in range(res.height):
        for x in range(res.width):
            assert new.color_at(x, y) == old.color_at(x + 1, y + 1)


def test_crop_is_idempotent(make_bayer):
    img = make_bayer(np.zeros((6, 6), dtype=np.uint16), crop=Crop(top=2, right=0, bottom=0, left=0))
    once = crop(img)
    twice = crop(once)
    assert twice is once


def test_crop_without_margins_is_noop(make_bayer):
    img = make_bayer(np.zeros((4, 4), dtype=np.uint16))
    assert crop(img) is img


def test_crop_errors(make_bayer):
    img = make_bayer(np.zeros((4, 4), dtype=np.uint16), crop=Crop(top=2, right=0, bottom=2, left=0))
    with pytest.raises(DimensionError):
        crop(img)

    img = make_bayer(np.zeros((4, 4), dtype=np.uint16), crop=Crop(top=-1, right=0, bottom=0, left=0))
    with pytest.raises(DimensionError):
        crop(img)


def test_crop_rejects_other_colourspaces():
    img = LinRgbImage(width=2, height=2, data=np.zeros((2, 2, 3), dtype=np.float32), metadata=RawMetadata())
    with pytest.raises(TypeError):
        crop(img)


def test_subsample_keeps_cfa_cells(make_bayer):
    data = np.arange(256, dtype=np.uint16).reshape(16, 16)
    img = make_bayer(data)

    res = subsample(img, factor=2)

    assert (res.width, res.height) == (8, 8)
    assert np.array_equal(res.data[0::2, 0::2], data[0::4, 0::4])
    assert res.data[1, 1] == data[1, 1]
    assert res.data[2, 3] == data[4, 5]
    assert res.metadata.cfa == img.metadata.cfa


def test_subsample_carries_margins(make_bayer):
    data = np.arange(32 * 32, dtype=np.uint16).reshape(32, 32)
    img = make_bayer(data, crop=Crop(top=8, right=0, bottom=1, left=0))

    res = subsample(img, factor=2)

    assert (res.width, res.height) == (16, 16)
    assert res.data[0, 0] == data[0, 0]
    assert res.metadata.crop == Crop(top=4, right=0, bottom=2, left=0)
    assert res.metadata.cfa == img.metadata.cfa


def test_processor_crops_before_thumbnail(make_bayer):
    data = np.arange(100, dtype=np.uint16).reshape(10, 10)
    img = make_bayer(data, crop=Crop(top=1, right=1, bottom=1, left=1))
    ctx = PipelineContext(original_size=(10, 10))

    res = GeometryProcessor(GeometryConfig(apply_crop=True, thumbnail=True, thumbnail_factor=2)).process(img, ctx)

    assert (res.width, res.height) == (4, 4)
    assert res.data[0, 0] == data[1, 1]
    assert res.metadata.cfa == Cfa().shift(1, 1)
    assert res.metadata.crop is None


def test_processor_thumbnail_honours_disabled_crop(make_bayer):
    img = make_bayer(np.zeros((32, 32), dtype=np.uint16), crop=Crop(top=8, right=0, bottom=0, left=0))
    ctx = PipelineContext(original_size=(32, 32))

    res = GeometryProcessor(GeometryConfig(apply_crop=False, thumbnail=True, thumbnail_factor=2)).process(img, ctx)

    assert (res.height, res.width) == (16, 16)
    assert res.metadata.crop == Crop(top=4, right=0, bottom=0, left=0)
    assert ctx.metrics["sensor_size"] == (16, 16)


def test_subsample_errors(make_bayer):
    img = make_bayer(np.zeros((4, 4), dtype=np.uint16))
    with pytest.raises(ValueError):
        subsample(img, factor=0)
    with pytest.raises(DimensionError):
        subsample(img, factor=4)


def test_processor_records_sensor_size(make_bayer):
    img = make_bayer(np.zeros((16, 16), dtype=np.uint16), crop=Crop(top=0, right=0, bottom=8, left=0))
    ctx = PipelineContext(original_size=(16, 16))

    res = GeometryProcessor(GeometryConfig(apply_crop=True, thumbnail=True, thumbnail_factor=2)).process(img, ctx)

    assert (res.height, res.width) == (4, 8)
    assert ctx.metrics["sensor_size"] == (4, 8)
