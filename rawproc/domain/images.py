"""
Colourspace-tagged image containers.

Each colourspace is its own wrapper class so that a transform written for one
colourspace cannot silently be handed data from another. The sample type
(uint16, float32, uint8) is simply the numpy dtype of ``data``.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Type, TypeVar

import numpy as np

from rawproc.domain.errors import DimensionError
from rawproc.domain.models import RawMetadata

ImageT = TypeVar("ImageT", bound="Image")


@dataclass(frozen=True, eq=False)
class Image:
    COMPONENTS: ClassVar[int] = 3

    width: int
    height: int
    data: np.ndarray
    metadata: RawMetadata

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise DimensionError(
                f"{type(self).__name__} needs positive dimensions, got {self.width}x{self.height}"
            )

        data = np.asarray(self.data)
        expected = self.width * self.height * self.COMPONENTS
        if data.size != expected:
            raise DimensionError(
                f"{type(self).__name__} of {self.width}x{self.height} needs "
                f"{expected} samples ({self.COMPONENTS} per pixel), got {data.size}"
            )

        # Flat row-major buffers are accepted and viewed in canonical shape
        object.__setattr__(self, "data", data.reshape(self.shape))

    @property
    def shape(self) -> tuple:
        if self.COMPONENTS == 1:
            return (self.height, self.width)
        return (self.height, self.width, self.COMPONENTS)

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    @property
    def is_float(self) -> bool:
        return bool(np.issubdtype(self.data.dtype, np.floating))

    def sample_scale(self) -> np.ndarray:
        """
        Per-channel value that represents full scale for this buffer.

        Float data is already normalized to [0, 1]. 8-bit data is scaled to 255.
        Any other integer data is expressed in sensor units, so the camera
        whitelevels apply.
        """
        if self.is_float:
            return np.ones(3, dtype=np.float64)
        if self.data.dtype == np.uint8:
            return np.full(3, 255.0, dtype=np.float64)
        return np.asarray(self.metadata.whitelevels, dtype=np.float64)

    def with_data(
        self,
        data: np.ndarray,
        target: Optional[Type[ImageT]] = None,
        **changes: Any,
    ) -> ImageT:
        """
        Returns a new image of `target` colourspace (same one by default),
        carrying width, height and metadata forward unless overridden.
        """
        cls = target or type(self)
        fields = {
            "width": self.width,
            "height": self.height,
            "metadata": self.metadata,
            **changes,
        }
        return cls(data=data, **fields)  # type: ignore[return-value]

    @classmethod
    def from_raw_parts(
        cls: Type[ImageT],
        width: int,
        height: int,
        metadata: RawMetadata,
        data: Any,
    ) -> ImageT:
        return cls(width=width, height=height, data=np.asarray(data), metadata=metadata)


@dataclass(frozen=True, eq=False)
class BayerRgbImage(Image):
    """
    Straight-from-the-sensor samples, one per photosite, masked by the CFA.
    """

    COMPONENTS: ClassVar[int] = 1


@dataclass(frozen=True, eq=False)
class LinRgbImage(Image):
    """
    Demosaiced linear RGB, still in the camera's own primaries.
    """


@dataclass(frozen=True, eq=False)
class XyzImage(Image):
    """
    CIE XYZ, not yet adapted to any reference white.
    """


@dataclass(frozen=True, eq=False)
class LinSrgbImage(Image):
    """
    Linear light with sRGB primaries and D65 white.
    """


@dataclass(frozen=True, eq=False)
class SrgbImage(Image):
    """
    Gamma-encoded sRGB, ready for display.
    """


@dataclass(frozen=True, eq=False)
class HsvImage(Image):
    """
    Hue in degrees [0, 360), saturation and value in [0, 1].
    """


@dataclass(frozen=True, eq=False)
class GrayImage(Image):
    """
    Single luminance-like component per pixel, in the range of its source.
    """

    COMPONENTS: ClassVar[int] = 1
