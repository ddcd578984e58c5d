from typing import Protocol, Any, ContextManager, runtime_checkable
from dataclasses import dataclass, field
from rawproc.domain.images import Image
from rawproc.domain.types import Dimensions


@dataclass
class PipelineContext:
    """
    Shared state passed through the pipeline.
    """

    # Sensor size as decoded, before crop or thumbnailing
    original_size: Dimensions

    # Metrics gathered by stages (e.g., autolevel peak, adaptation matrix)
    metrics: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class IProcessor(Protocol):
    """
    Interface for any image processing step.
    """

    def process(self, image: Image, context: PipelineContext) -> Image: ...


class IImageLoader(Protocol):
    """
    Interface for raw decoders.
    """

    def load(self, file_path: str) -> ContextManager[Any]: ...
