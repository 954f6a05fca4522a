from __future__ import annotations

import numpy as np

from plotrecall.raster.canvas import RGBA, fill_rect


def draw_markers(dst: np.ndarray, xs: np.ndarray, ys: np.ndarray, color: RGBA, size: int = 3) -> None:
    """Square markers of ``size`` device pixels centred on each finite (x, y)."""
    radius = max(0, size // 2)
    finite = np.isfinite(xs) & np.isfinite(ys)
    for x, y in zip(np.rint(xs[finite]).tolist(), np.rint(ys[finite]).tolist(), strict=False):
        cx = int(x)
        cy = int(y)
        fill_rect(dst, cx - radius, cy - radius, cx + radius, cy + radius, color)
