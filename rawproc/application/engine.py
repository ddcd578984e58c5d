from dataclasses import asdict
from typing import Any, Callable, Optional, Tuple

from rawproc.domain.images import BayerRgbImage, Image, SrgbImage
from rawproc.domain.interfaces import PipelineContext
from rawproc.domain.models import DevelopConfig
from rawproc.domain.validation import expect_image
from rawproc.features.colorspace.processor import ColorspaceProcessor
from rawproc.features.demosaic.processor import DemosaicProcessor
from rawproc.features.geometry.processor import GeometryProcessor
from rawproc.features.radiometry.processor import RadiometryProcessor
from rawproc.features.tone.processor import ToneProcessor
from rawproc.kernel.caching.logic import CacheEntry, calculate_config_hash
from rawproc.kernel.caching.manager import PipelineCache
from rawproc.kernel.system.config import APP_CONFIG
from rawproc.kernel.system.logging import get_logger

logger = get_logger(__name__)


class DevelopEngine:
    """
    Assembles the development pipeline with stage-level caching.

    Stage order is fixed: sensor (geometry + radiometry), demosaic, colourspace,
    tone. A stage re-runs when its own settings change or when any stage before
    it re-ran.
    """

    def __init__(self) -> None:
        self.config = APP_CONFIG
        self.cache = PipelineCache()

    def _run_stage(
        self,
        img: Image,
        config: Any,
        cache_field: str,
        processor_fn: Callable[[Image, PipelineContext], Image],
        context: PipelineContext,
        pipeline_changed: bool,
    ) -> Tuple[Image, bool]:
        """
        Executes one stage, or returns its cached result.

        Args:
            img: Input image.
            config: Configuration for this stage (used for hashing).
            cache_field: Attribute of PipelineCache holding the result.
            processor_fn: Callable doing the actual processing.
            context: Pipeline context.
            pipeline_changed: Whether a previous stage produced a new result.

        Returns:
            Tuple[Image, bool]: (Resulting image, is_changed flag)
        """
        conf_hash = calculate_config_hash(config)

        cached_entry = getattr(self.cache, cache_field)
        if (
            not pipeline_changed
            and cached_entry
            and cached_entry.config_hash == conf_hash
        ):
            context.metrics.update(cached_entry.metrics)
            return cached_entry.data, False

        logger.debug(f"Running stage '{cache_field}'")
        new_img = processor_fn(img, context)

        setattr(self.cache, cache_field, CacheEntry(conf_hash, new_img, context.metrics.copy()))
        return new_img, True

    def process(
        self,
        img: BayerRgbImage,
        settings: DevelopConfig,
        source_hash: str,
        context: Optional[PipelineContext] = None,
    ) -> SrgbImage:
        """
        Develops a decoded sensor image into float32 sRGB.
        """
        img = expect_image(img, BayerRgbImage)

        if context is None:
            context = PipelineContext(original_size=(img.height, img.width))

        if self.cache.source_hash != source_hash:
            self.cache.clear()
            self.cache.source_hash = source_hash

        current_img: Image = img
        pipeline_changed = False

        def run_sensor(img_in: Image, ctx: PipelineContext) -> Image:
            img_in = GeometryProcessor(settings.geometry).process(img_in, ctx)
            return RadiometryProcessor(settings.radiometry).process(img_in, ctx)  # type: ignore[arg-type]

        current_img, pipeline_changed = self._run_stage(
            current_img,
            {**asdict(settings.geometry), **asdict(settings.radiometry)},
            "sensor",
            run_sensor,
            context,
            pipeline_changed,
        )

        def run_demosaic(img_in: Image, ctx: PipelineContext) -> Image:
            return DemosaicProcessor(settings.demosaic).process(img_in, ctx)  # type: ignore[arg-type]

        current_img, pipeline_changed = self._run_stage(
            current_img,
            settings.demosaic,
            "demosaic",
            run_demosaic,
            context,
            pipeline_changed,
        )

        def run_colorspace(img_in: Image, ctx: PipelineContext) -> Image:
            return ColorspaceProcessor().process(img_in, ctx)  # type: ignore[arg-type]

        current_img, pipeline_changed = self._run_stage(
            current_img,
            {},
            "colorspace",
            run_colorspace,
            context,
            pipeline_changed,
        )

        def run_tone(img_in: Image, ctx: PipelineContext) -> Image:
            return ToneProcessor(settings.tone).process(img_in, ctx)  # type: ignore[arg-type]

        current_img, pipeline_changed = self._run_stage(
            current_img,
            settings.tone,
            "tone",
            run_tone,
            context,
            pipeline_changed,
        )

        return expect_image(current_img, SrgbImage)
