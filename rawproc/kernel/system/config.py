import os
from dataclasses import dataclass

from rawproc.domain.models import DevelopConfig, ExportConfig, ExportFormat
from rawproc.features.demosaic.models import DemosaicConfig, Interpolation
from rawproc.features.geometry.models import GeometryConfig
from rawproc.features.radiometry.models import RadiometryConfig
from rawproc.features.tone.models import ToneConfig


@dataclass
class AppConfig:
    max_workers: int
    cache_dir: str
    default_export_dir: str
    # Append every timed call to <cache_dir>/perf_stats.csv
    perf_log: bool


# User dir env (config, cache and default export location)
BASE_USER_DIR = os.path.abspath(
    os.getenv("RAWPROC_USER_DIR", os.path.join(os.path.expanduser("~"), ".rawproc"))
)

APP_CONFIG = AppConfig(
    max_workers=max(1, (os.cpu_count() or 1) - 1),
    cache_dir=os.path.join(BASE_USER_DIR, "cache"),
    default_export_dir=os.path.join(BASE_USER_DIR, "export"),
    perf_log=os.getenv("RAWPROC_PERF_LOG", "0") == "1",
)

# Neutral development: camera calibration, bilinear demosaic, no tone edits
DEFAULT_DEVELOP_CONFIG = DevelopConfig(
    geometry=GeometryConfig(
        apply_crop=True,
        thumbnail=False,
        thumbnail_factor=4,
    ),
    radiometry=RadiometryConfig(
        black_levels=None,
        white_balance=None,
        exposure_ev=0.0,
    ),
    demosaic=DemosaicConfig(
        interpolation=Interpolation.BILINEAR.value,
        seed=None,
    ),
    tone=ToneConfig(
        contrast=1.0,
        saturation=1.0,
        hue_shift=0.0,
        brightness=0.0,
        autolevel=False,
    ),
    export=ExportConfig(
        export_path=APP_CONFIG.default_export_dir,
        export_fmt=ExportFormat.JPEG.value,
        jpeg_quality=95,
        filename_pattern="{{ original_name }}",
    ),
)
