from rawproc.domain.interfaces import IProcessor, PipelineContext
from rawproc.domain.images import LinRgbImage, SrgbImage
from rawproc.features.colorspace.logic import (
    chromatic_adaptation_matrix,
    linrgb_to_xyz,
    linsrgb_to_srgb,
    xyz_to_linsrgb,
)


class ColorspaceProcessor(IProcessor):
    """
    LinRgb -> XYZ -> LinSrgb -> Srgb. Stages cannot be reordered or skipped,
    each one only accepts the previous one's output.
    """

    def process(self, image: LinRgbImage, context: PipelineContext) -> SrgbImage:  # type: ignore[override]
        xyz = linrgb_to_xyz(image)

        context.metrics["adaptation_matrix"] = chromatic_adaptation_matrix(
            xyz.metadata.cam_to_xyz
        )
        linear = xyz_to_linsrgb(xyz)

        return linsrgb_to_srgb(linear)
