from typing import Any, Type, TypeVar

from rawproc.domain.images import Image

ImageT = TypeVar("ImageT", bound=Image)


def expect_image(img: Any, cls: Type[ImageT]) -> ImageT:
    """
    Guards a colourspace transform against being fed the wrong colourspace.
    """
    if not isinstance(img, cls):
        raise TypeError(f"Expected {cls.__name__}, got {type(img).__name__}")
    return img


def expect_float(img: Image) -> None:
    if not img.is_float:
        raise TypeError(
            f"{type(img).__name__} must hold float samples, got {img.dtype}. "
            "Convert with rawproc.kernel.image.logic.to_floats first."
        )
