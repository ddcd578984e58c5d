from typing import Optional

import numpy as np


class RollingRandom:
    """
    Pre-filled bucket of random bytes consumed round-robin.

    Nearest-neighbour demosaic needs a couple of coin flips per photosite;
    indexing a buffer is much cheaper than calling a general purpose RNG tens of
    millions of times. The bucket is larger than common sensor row lengths so the
    repeating sequence is unlikely to line up with the image into a visible
    diagonal pattern. Not a security primitive.
    """

    BUCKET_SIZE = 4096

    def __init__(self, seed: Optional[int] = None, size: int = BUCKET_SIZE):
        if size < 1:
            raise ValueError(f"Bucket size must be positive, got {size}")
        rng = np.random.default_rng(seed)
        self.values: np.ndarray = rng.integers(0, 256, size=size, dtype=np.uint8)
        self.index: int = 0

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def random_byte(self) -> int:
        value = int(self.values[self.index])
        self.index = (self.index + 1) % len(self)
        return value

    def random_bool(self) -> bool:
        return self.random_byte() % 2 == 0

    def take(self, n: int) -> np.ndarray:
        """
        Next n bytes of the stream, wrapping around the bucket as often as needed.
        """
        if n < 0:
            raise ValueError(f"Cannot take a negative number of bytes, got {n}")
        positions = (self.index + np.arange(n)) % len(self)
        self.index = (self.index + n) % len(self)
        return self.values[positions]
