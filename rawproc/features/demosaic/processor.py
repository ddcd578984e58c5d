from rawproc.domain.interfaces import IProcessor, PipelineContext
from rawproc.domain.images import BayerRgbImage, LinRgbImage
from rawproc.features.demosaic.models import DemosaicConfig, Interpolation
from rawproc.features.demosaic.logic import demosaic
from rawproc.features.demosaic.random import RollingRandom


class DemosaicProcessor(IProcessor):
    """
    BayerRgb -> LinRgb.
    """

    def __init__(self, config: DemosaicConfig):
        self.config = config

    def process(self, image: BayerRgbImage, context: PipelineContext) -> LinRgbImage:  # type: ignore[override]
        method = Interpolation(self.config.interpolation)

        rng = None
        if method is Interpolation.NEAREST_NEIGHBOR:
            rng = RollingRandom(self.config.seed)

        context.metrics["interpolation"] = method.value
        return demosaic(image, method, rng)
