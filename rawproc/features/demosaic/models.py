from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Interpolation(Enum):
    # Native channel only, missing channels left at zero
    NONE = "none"
    NEAREST_NEIGHBOR = "nearest"
    BILINEAR = "bilinear"


@dataclass(frozen=True)
class DemosaicConfig:
    interpolation: str = Interpolation.BILINEAR.value

    # Seed for the nearest-neighbour tie-break buffer. None reseeds on every run.
    seed: Optional[int] = None
