from typing import Optional
from rawproc.kernel.caching.logic import CacheEntry


class PipelineCache:
    """
    Holds intermediate results of the development pipeline for the ACTIVE raw file.
    This cache is reset when switching source files.
    """

    def __init__(self) -> None:
        self.source_hash: str = ""

        # Checkpoints, in pipeline order
        self.sensor: Optional[CacheEntry] = None
        self.demosaic: Optional[CacheEntry] = None
        self.colorspace: Optional[CacheEntry] = None
        self.tone: Optional[CacheEntry] = None

    def clear(self) -> None:
        self.sensor = None
        self.demosaic = None
        self.colorspace = None
        self.tone = None
        self.source_hash = ""
