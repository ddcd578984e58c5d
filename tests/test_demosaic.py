import numpy as np
import pytest

from rawproc.domain.errors import DimensionError
from rawproc.domain.images import LinRgbImage
from rawproc.domain.interfaces import PipelineContext
from rawproc.domain.models import Cfa
from rawproc.features.demosaic.logic import demosaic
from rawproc.features.demosaic.models import DemosaicConfig, Interpolation
from rawproc.features.demosaic.processor import DemosaicProcessor
from rawproc.features.demosaic.random import RollingRandom

PHASES = [Cfa(), Cfa().shift(1, 0), Cfa().shift(0, 1), Cfa().shift(1, 1)]


class TestRollingRandom:
    def test_seeded_is_reproducible(self):
        a = RollingRandom(seed=42)
        b = RollingRandom(seed=42)
        assert len(a) == RollingRandom.BUCKET_SIZE
        assert np.array_equal(a.values, b.values)
        assert [a.random_byte() for _ in range(10)] == [b.random_byte() for _ in range(10)]

    def test_wraps_around(self):
        rng = RollingRandom(seed=1, size=3)
        first = [rng.random_byte() for _ in range(3)]
        assert rng.index == 0
        assert [rng.random_byte() for _ in range(3)] == first

    def test_random_bool_is_byte_parity(self):
        rng = RollingRandom(seed=3, size=8)
        expected = [int(v) % 2 == 0 for v in rng.values]
        assert [rng.random_bool() for _ in range(8)] == expected

    def test_take_continues_stream(self):
        a = RollingRandom(seed=7, size=5)
        b = RollingRandom(seed=7, size=5)
        a.random_byte()

        chunk = a.take(7)

        assert [int(v) for v in chunk] == [b.random_byte() for _ in range(8)][1:]
        assert a.index == 3
        assert a.take(0).size == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            RollingRandom(size=0)
        with pytest.raises(ValueError):
            RollingRandom(size=4).take(-1)


def _ramp(make_bayer):
    return make_bayer(np.arange(16, dtype=np.float32).reshape(4, 4))


def test_bilinear_interior(make_bayer):
    rgb = demosaic(_ramp(make_bayer), Interpolation.BILINEAR).data

    # Red site: 4 green cross neighbours, 4 blue diagonals
    assert np.allclose(rgb[2, 2], [10.0, 10.0, 10.0])
    # Blue site: 4 red diagonals, 4 green cross neighbours
    assert np.allclose(rgb[1, 1], [5.0, 5.0, 5.0])
    # Green site between blues horizontally, reds vertically
    assert np.allclose(rgb[1, 2], [6.0, 6.0, 6.0])


def test_bilinear_edges_and_corners(make_bayer):
    rgb = demosaic(_ramp(make_bayer), Interpolation.BILINEAR).data

    # Corner red: 2 greens, 1 blue
    assert np.allclose(rgb[0, 0], [0.0, 2.5, 5.0])
    # Edge red: 3 greens, 2 blues
    assert np.allclose(rgb[0, 2], [2.0, 10.0 / 3.0, 6.0])
    # Edge green: 2 reds, 1 blue
    assert np.allclose(rgb[0, 1], [1.0, 1.0, 5.0])
    # Corner blue: 1 red, 2 greens
    assert np.allclose(rgb[3, 3], [10.0, 12.5, 15.0])


@pytest.mark.parametrize("cfa", PHASES, ids=lambda c: c.name)
@pytest.mark.parametrize("method", [Interpolation.BILINEAR, Interpolation.NEAREST_NEIGHBOR])
def test_flat_colour_is_reconstructed_exactly(make_bayer, channel_mosaic, cfa, method):
    data = channel_mosaic(6, 4, (0.2, 0.5, 0.8), cfa)
    res = demosaic(make_bayer(data, cfa=cfa), method, RollingRandom(seed=5))

    assert isinstance(res, LinRgbImage)
    assert res.data.shape == (4, 6, 3)
    assert np.allclose(res.data, [0.2, 0.5, 0.8])


def test_nearest_neighbor_copies_a_neighbour(make_bayer):
    rng = np.random.default_rng(0)
    data = rng.random((8, 10)).astype(np.float32)
    img = make_bayer(data)
    cfa = img.metadata.cfa

    res = demosaic(img, Interpolation.NEAREST_NEIGHBOR, RollingRandom(seed=11)).data

    for y in range(8):
        for x in range(10):
            native = cfa.color_at(x, y)
            assert res[y, x, native] == data[y, x]
            for color in range(3):
                if color == native:
                    continue
                candidates = {
                    float(data[ny, nx])
                    for ny in range(max(0, y - 1), min(8, y + 2))
                    for nx in range(max(0, x - 1), min(10, x + 2))
                    if (ny, nx) != (y, x) and cfa.color_at(nx, ny) == color
                }
                assert float(res[y, x, color]) in candidates


def test_nearest_neighbor_seed_reproducibility(make_bayer):
    data = np.random.default_rng(1).random((6, 6)).astype(np.float32)
    img = make_bayer(data)

    rng_a = RollingRandom(seed=99)
    rng_b = RollingRandom(seed=99)
    a = demosaic(img, Interpolation.NEAREST_NEIGHBOR, rng_a)
    b = demosaic(img, Interpolation.NEAREST_NEIGHBOR, rng_b)

    assert np.array_equal(a.data, b.data)
    assert rng_a.index == rng_b.index
    assert rng_a.index > 0


def test_none_places_native_only(make_bayer):
    res = demosaic(_ramp(make_bayer), Interpolation.NONE).data
    assert np.allclose(res[0, 0], [0.0, 0.0, 0.0])
    assert np.allclose(res[0, 1], [0.0, 1.0, 0.0])
    assert np.allclose(res[1, 1], [0.0, 0.0, 5.0])


def test_integer_input_keeps_dtype(make_bayer, channel_mosaic):
    data = channel_mosaic(4, 4, (100, 200, 300), dtype=np.uint16)
    res = demosaic(make_bayer(data), Interpolation.BILINEAR)
    assert res.dtype == np.uint16
    assert np.array_equal(res.data[2, 2], [100, 200, 300])


def test_demosaic_errors(make_bayer):
    with pytest.raises(DimensionError):
        demosaic(make_bayer(np.zeros((1, 4), dtype=np.float32)))

    rgb = demosaic(_ramp(make_bayer))
    with pytest.raises(TypeError):
        demosaic(rgb)

    with pytest.raises(ValueError):
        demosaic(_ramp(make_bayer), "lanczos")


def test_processor_records_method(make_bayer):
    ctx = PipelineContext(original_size=(4, 4))
    res = DemosaicProcessor(DemosaicConfig(interpolation="nearest", seed=3)).process(_ramp(make_bayer), ctx)
    assert isinstance(res, LinRgbImage)
    assert ctx.metrics["interpolation"] == "nearest"
