from rawproc.domain.interfaces import IProcessor, PipelineContext
from rawproc.domain.images import BayerRgbImage
from rawproc.domain.validation import expect_image
from rawproc.features.radiometry.models import RadiometryConfig
from rawproc.features.radiometry.logic import black_levels, exposure, white_balance
from rawproc.kernel.image.logic import to_floats


class RadiometryProcessor(IProcessor):
    """
    Linear sensor corrections. The order is fixed: black level on the raw
    integers (vendor calibration assumes un-balanced data), conversion to
    floats, white balance, then exposure on top of the calibrated data.
    """

    def __init__(self, config: RadiometryConfig):
        self.config = config

    def process(self, image: BayerRgbImage, context: PipelineContext) -> BayerRgbImage:  # type: ignore[override]
        img = expect_image(image, BayerRgbImage)

        img = black_levels(img, self.config.black_levels)
        img = to_floats(img)

        coefficients = self.config.white_balance or img.metadata.normalized_whitebalance()
        img = white_balance(img, coefficients)
        context.metrics["white_balance"] = tuple(coefficients)

        return exposure(img, self.config.exposure_ev)
