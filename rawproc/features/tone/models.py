from dataclasses import dataclass


@dataclass(frozen=True)
class ToneConfig:
    """
    Appearance adjustments applied to the finished sRGB image.
    Defaults are neutral.
    """

    contrast: float = 1.0

    # HSV detour
    saturation: float = 1.0
    hue_shift: float = 0.0
    brightness: float = 0.0

    autolevel: bool = False

    # Collapse to the per-pixel mean of R, G and B
    monochrome: bool = False

    @property
    def needs_hsv(self) -> bool:
        return self.saturation != 1.0 or self.hue_shift != 0.0 or self.brightness != 0.0
