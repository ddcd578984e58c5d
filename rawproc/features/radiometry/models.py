from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class RadiometryConfig:
    """
    Linear corrections applied to the sensor image before demosaic.
    None means "use the camera's own calibration".
    """

    black_levels: Optional[Tuple[int, int, int]] = None
    white_balance: Optional[Tuple[float, float, float]] = None
    exposure_ev: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RadiometryConfig":
        """
        JSON has no tuples; triplets come back as lists.
        """

        def as_triplet(val: Any, kind: Any) -> Any:
            if val is None:
                return None
            if isinstance(val, (int, float)):
                return (kind(val), kind(val), kind(val))
            r, g, b = val
            return (kind(r), kind(g), kind(b))

        return cls(
            black_levels=as_triplet(data.get("black_levels"), int),
            white_balance=as_triplet(data.get("white_balance"), float),
            exposure_ev=float(data.get("exposure_ev", 0.0)),
        )
