from typing import TypeAlias, Tuple
import numpy as np
import numpy.typing as npt


# Floating point image 0.0 - 1.0 (Height, Width, Channels)
ImageBuffer: TypeAlias = npt.NDArray[np.float32]

# Single channel CFA-masked samples (Height, Width), any numeric dtype
SensorBuffer: TypeAlias = npt.NDArray[np.generic]

# 3x3 colour matrices
Matrix3: TypeAlias = npt.NDArray[np.float64]

# (Height, Width)
Dimensions: TypeAlias = Tuple[int, int]

# Per-channel triplets, always Red, Green, Blue
Triplet: TypeAlias = Tuple[float, float, float]
LevelTriplet: TypeAlias = Tuple[int, int, int]
