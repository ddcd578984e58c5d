import os

os.environ.setdefault("NUMBA_THREADING_LAYER", "workqueue")

import numpy as np
import pytest

from rawproc.domain.images import BayerRgbImage
from rawproc.domain.models import Cfa, RawMetadata


def _make_bayer(data, **meta):
    arr = np.asarray(data)
    h, w = arr.shape
    return BayerRgbImage(width=w, height=h, data=arr, metadata=RawMetadata(**meta))


def _channel_mosaic(width, height, rgb, cfa=None, dtype=np.float32):
    """Mosaic where every photosite holds its native channel's value from rgb."""
    cfa = cfa or Cfa()
    colors = cfa.color_map(width, height)
    return np.asarray(rgb, dtype=np.float64)[colors].astype(dtype)


@pytest.fixture
def make_bayer():
    return _make_bayer


@pytest.fixture
def channel_mosaic():
    return _channel_mosaic
