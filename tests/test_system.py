import csv
import io
import logging
import os
import re
from pathlib import Path

import numpy as np

import rawproc
from rawproc.kernel.caching.logic import calculate_config_hash
from rawproc.kernel.system import performance
from rawproc.kernel.system.config import APP_CONFIG, DEFAULT_DEVELOP_CONFIG
from rawproc.kernel.system.logging import ROOT_LOGGER, get_logger, setup_logging
from rawproc.features.tone.models import ToneConfig


def test_version_matches_project():
    pyproject = (Path(__file__).parent.parent / "pyproject.toml").read_text()
    declared = re.search(r'^version = "([^"]+)"', pyproject, re.MULTILINE).group(1)
    assert rawproc.__version__ == declared


def test_get_logger_namespacing():
    assert get_logger().name == ROOT_LOGGER
    assert get_logger("rawproc.features.tone.logic").name == "rawproc.features.tone.logic"
    assert get_logger("perf").name == "rawproc.perf"


def test_setup_logging_is_idempotent():
    stream = io.StringIO()
    logger = setup_logging(logging.DEBUG, stream)
    count = len(logger.handlers)
    setup_logging(logging.DEBUG, stream)
    assert len(logger.handlers) == count


def test_time_function_writes_csv(tmp_path, monkeypatch):
    monkeypatch.setattr(APP_CONFIG, "cache_dir", str(tmp_path))
    monkeypatch.setattr(APP_CONFIG, "perf_log", True)

    @performance.time_function
    def double(arr):
        return arr * 2

    res = double(np.ones((3, 4)))

    assert np.array_equal(res, np.full((3, 4), 2.0))
    with open(os.path.join(str(tmp_path), "perf_stats.csv")) as f:
        rows = list(csv.reader(f))
    assert rows[0] == performance.PERF_HEADER
    assert rows[1][1] == "double"
    assert rows[1][3] == "(3, 4)"


def test_config_hash_is_stable():
    assert calculate_config_hash(ToneConfig()) == calculate_config_hash(ToneConfig())
    assert calculate_config_hash(ToneConfig()) != calculate_config_hash(ToneConfig(contrast=1.1))
    assert calculate_config_hash({"b": 1, "a": 2}) == calculate_config_hash({"a": 2, "b": 1})


def test_default_config_is_neutral():
    tone = DEFAULT_DEVELOP_CONFIG.tone
    assert not tone.needs_hsv
    assert not tone.autolevel
    assert tone.contrast == 1.0
    assert DEFAULT_DEVELOP_CONFIG.radiometry.exposure_ev == 0.0
