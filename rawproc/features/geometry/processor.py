from rawproc.domain.interfaces import IProcessor, PipelineContext
from rawproc.domain.images import BayerRgbImage
from rawproc.domain.validation import expect_image
from rawproc.features.geometry.models import GeometryConfig
from rawproc.features.geometry.logic import crop, subsample


class GeometryProcessor(IProcessor):
    """
    Trims the sensor border and optionally shrinks the mosaic for previews.
    """

    def __init__(self, config: GeometryConfig):
        self.config = config

    def process(self, image: BayerRgbImage, context: PipelineContext) -> BayerRgbImage:  # type: ignore[override]
        img = expect_image(image, BayerRgbImage)

        if self.config.apply_crop:
            img = crop(img)

        if self.config.thumbnail:
            img = subsample(img, self.config.thumbnail_factor)

        context.metrics["sensor_size"] = (img.height, img.width)
        return img
