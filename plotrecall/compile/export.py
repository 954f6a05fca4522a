from __future__ import annotations

from io import BytesIO

import numpy as np
from PIL import Image
import torch

from plotrecall.raster.canvas import validate_rgba


def encode_png(image: np.ndarray) -> bytes:
    validate_rgba(image)
    buf = BytesIO()
    Image.fromarray(np.ascontiguousarray(image)).save(buf, format="PNG")
    return buf.getvalue()


def decode_png(payload: bytes) -> np.ndarray:
    with Image.open(BytesIO(payload)) as img:
        return np.asarray(img.convert("RGBA"), dtype=np.uint8).copy()


def to_frame_tensor(image: np.ndarray) -> torch.Tensor:
    """(H, W, 4) uint8 tensor for hosts that present frames from torch buffers."""
    validate_rgba(image)
    return torch.from_numpy(np.ascontiguousarray(image)).clone()
