from rawproc.domain.interfaces import IProcessor, PipelineContext
from rawproc.domain.images import SrgbImage
from rawproc.domain.validation import expect_image
from rawproc.features.tone.models import ToneConfig
from rawproc.features.tone.logic import (
    autolevel,
    brightness,
    contrast,
    gray_to_srgb,
    hsv_to_rgb,
    hue_shift,
    rgb_to_hsv,
    saturation,
    to_gray,
)


class ToneProcessor(IProcessor):
    """
    Appearance edits on display-referred sRGB.
    """

    def __init__(self, config: ToneConfig):
        self.config = config

    def process(self, image: SrgbImage, context: PipelineContext) -> SrgbImage:  # type: ignore[override]
        img = expect_image(image, SrgbImage)
        conf = self.config

        if conf.autolevel:
            img = autolevel(img)

        if conf.needs_hsv:
            hsv = rgb_to_hsv(img)
            if conf.saturation != 1.0:
                hsv = saturation(hsv, conf.saturation)
            if conf.hue_shift != 0.0:
                hsv = hue_shift(hsv, conf.hue_shift)
            if conf.brightness != 0.0:
                hsv = brightness(hsv, conf.brightness)
            img = hsv_to_rgb(hsv)

        if conf.contrast != 1.0:
            img = contrast(img, conf.contrast)

        if conf.monochrome:
            img = gray_to_srgb(to_gray(img))

        context.metrics["tone_applied"] = (
            conf.needs_hsv or conf.autolevel or conf.contrast != 1.0 or conf.monochrome
        )
        return img
