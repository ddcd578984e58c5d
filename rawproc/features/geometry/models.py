from dataclasses import dataclass


@dataclass(frozen=True)
class GeometryConfig:
    # Trim the masked sensor border reported by the decoder
    apply_crop: bool = True

    # Quick preview: keep one CFA cell per thumbnail_factor x thumbnail_factor block
    thumbnail: bool = False
    thumbnail_factor: int = 4
