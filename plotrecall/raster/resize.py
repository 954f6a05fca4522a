from __future__ import annotations

import numpy as np
from PIL import Image

from plotrecall.raster.canvas import validate_rgba


def fit_to_size(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Raster-scale a cached bucket image to the exact display size."""
    validate_rgba(image)
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be > 0")
    if image.shape[1] == width and image.shape[0] == height:
        return image
    resized = Image.fromarray(np.ascontiguousarray(image)).resize((width, height), resample=Image.Resampling.LANCZOS)
    return np.asarray(resized, dtype=np.uint8).copy()
