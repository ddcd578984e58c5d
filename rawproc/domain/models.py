from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from rawproc.domain.errors import CalibrationError, UnsupportedInputError
from rawproc.domain.types import LevelTriplet, Matrix3, Triplet
from rawproc.features.demosaic.models import DemosaicConfig
from rawproc.features.geometry.models import GeometryConfig
from rawproc.features.radiometry.models import RadiometryConfig
from rawproc.features.tone.models import ToneConfig


class Color(IntEnum):
    """
    Native channel recorded by a photosite. The value doubles as the RGB component index.
    """

    RED = 0
    GREEN = 1
    BLUE = 2


class ExportFormat(Enum):
    JPEG = "JPEG"
    PNG = "PNG"
    WEBP = "WEBP"
    TIFF = "TIFF"


CfaTile = Tuple[Tuple[Color, Color], Tuple[Color, Color]]

#   R G R G
#   G B G B
RGGB_TILE: CfaTile = ((Color.RED, Color.GREEN), (Color.GREEN, Color.BLUE))


@dataclass(frozen=True)
class Cfa:
    """
    Colour filter array description: a repeating 2x2 tile plus a phase offset.

    Only the RGGB tile is modelled. BGGR, GRBG and GBRG sensors are the same tile
    seen from a different origin, which is what the (dx, dy) phase expresses.
    """

    tile: CfaTile = RGGB_TILE
    dx: int = 0
    dy: int = 0

    def color_at(self, x: int, y: int) -> Color:
        return self.tile[(y + self.dy) % 2][(x + self.dx) % 2]

    def shift(self, dx: int, dy: int) -> "Cfa":
        """
        Re-phases the pattern so that the new (0, 0) is the old (dx, dy).
        Required after trimming rows or columns off the sensor.
        """
        return Cfa(self.tile, (self.dx + dx) % 2, (self.dy + dy) % 2)

    def pattern(self) -> np.ndarray:
        """
        Phase-adjusted 2x2 lookup, indexed as pattern[y % 2, x % 2].
        """
        return np.array(
            [[int(self.color_at(x, y)) for x in range(2)] for y in range(2)],
            dtype=np.int8,
        )

    def color_map(self, width: int, height: int) -> np.ndarray:
        """
        Native channel of every photosite as an (H, W) int8 array.
        """
        reps_y = (height + 1) // 2
        reps_x = (width + 1) // 2
        return np.tile(self.pattern(), (reps_y, reps_x))[:height, :width]

    @property
    def name(self) -> str:
        letters = {Color.RED: "R", Color.GREEN: "G", Color.BLUE: "B"}
        return "".join(letters[self.color_at(x, y)] for y in range(2) for x in range(2))

    @classmethod
    def from_pattern(cls, colors: Sequence[Sequence[Color]]) -> "Cfa":
        """
        Builds a CFA from a 2x2 description as reported by the raw decoder.
        Raises UnsupportedInputError for anything that is not a phase of RGGB.
        """
        arr = np.asarray(colors)
        if arr.shape != (2, 2):
            raise UnsupportedInputError(
                f"Only 2x2 Bayer patterns are supported, got shape {arr.shape}"
            )

        base = cls()
        for dy in range(2):
            for dx in range(2):
                candidate = base.shift(dx, dy)
                if all(
                    candidate.color_at(x, y) == Color(int(arr[y][x]))
                    for y in range(2)
                    for x in range(2)
                ):
                    return candidate

        raise UnsupportedInputError(f"Unsupported CFA layout: {arr.tolist()}")


@dataclass(frozen=True)
class Crop:
    """
    Sensor margins to discard, CSS order: top, right, bottom, left.
    """

    top: int = 0
    right: int = 0
    bottom: int = 0
    left: int = 0

    @classmethod
    def from_css_quad(cls, quad: Sequence[int]) -> Optional["Crop"]:
        """
        Returns None when every margin is zero.
        """
        top, right, bottom, left = (int(v) for v in quad)
        if top + right + bottom + left == 0:
            return None
        return cls(top, right, bottom, left)


@dataclass(frozen=True, eq=False)
class RawMetadata:
    """
    Calibration data delivered by the raw decoder alongside the sensor samples.
    """

    whitebalance: Triplet = (1.0, 1.0, 1.0)
    # Highest representable sample value per channel
    whitelevels: LevelTriplet = (65535, 65535, 65535)
    blacklevels: LevelTriplet = (0, 0, 0)
    crop: Optional[Crop] = None
    cfa: Cfa = field(default_factory=Cfa)
    cam_to_xyz: Matrix3 = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        if len(self.whitelevels) != 3 or any(wl <= 0 for wl in self.whitelevels):
            raise CalibrationError(
                f"Whitelevels must be three positive values, got {self.whitelevels}"
            )

        matrix = np.asarray(self.cam_to_xyz, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise CalibrationError(f"cam_to_xyz must be 3x3, got {matrix.shape}")
        object.__setattr__(self, "cam_to_xyz", matrix)

    def normalized_whitebalance(self) -> Triplet:
        """
        White balance coefficients scaled so that green is 1.0.
        Some decoders report multipliers around 256 instead of around 1.0.
        """
        red, green, blue = (float(v) for v in self.whitebalance)
        if green == 0.0:
            raise CalibrationError("Green white balance coefficient is zero")
        return red / green, 1.0, blue / green


@dataclass(frozen=True)
class ExportConfig:
    """
    Export parameters (path, format, naming).
    """

    export_path: str = "export"
    export_fmt: str = ExportFormat.JPEG.value
    jpeg_quality: int = 95
    filename_pattern: str = "{{ original_name }}"


@dataclass(frozen=True)
class DevelopConfig:
    """
    Complete set of adjustments for developing a single raw file.
    """

    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    radiometry: RadiometryConfig = field(default_factory=RadiometryConfig)
    demosaic: DemosaicConfig = field(default_factory=DemosaicConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def to_dict(self) -> Dict[str, Any]:
        """
        Flattens for serialization.
        """
        res: Dict[str, Any] = {}
        res.update(asdict(self.geometry))
        res.update(asdict(self.radiometry))
        res.update(asdict(self.demosaic))
        res.update(asdict(self.tone))
        res.update(asdict(self.export))
        return res

    @classmethod
    def from_flat_dict(cls, data: Dict[str, Any]) -> "DevelopConfig":
        """
        from JSON.
        """

        def filter_keys(config_cls: Any, d: Dict[str, Any]) -> Dict[str, Any]:
            valid_keys = config_cls.__dataclass_fields__.keys()
            return {k: v for k, v in d.items() if k in valid_keys and v is not None}

        return cls(
            geometry=GeometryConfig(**filter_keys(GeometryConfig, data)),
            radiometry=RadiometryConfig.from_dict(filter_keys(RadiometryConfig, data)),
            demosaic=DemosaicConfig(**filter_keys(DemosaicConfig, data)),
            tone=ToneConfig(**filter_keys(ToneConfig, data)),
            export=ExportConfig(**filter_keys(ExportConfig, data)),
        )
