from __future__ import annotations

import numpy as np


RGBA = tuple[int, int, int, int]


def new_canvas(width: int, height: int, color: RGBA = (0, 0, 0, 255)) -> np.ndarray:
    canvas = np.empty((height, width, 4), dtype=np.uint8)
    canvas[:, :] = np.asarray(color, dtype=np.uint8)
    return canvas


def validate_rgba(image: np.ndarray) -> None:
    if not isinstance(image, np.ndarray):
        raise ValueError(f"image must be a numpy array, got {type(image)!r}")
    if image.dtype != np.uint8:
        raise ValueError("image must be uint8")
    if image.ndim != 3 or image.shape[2] != 4:
        raise ValueError("image must have shape (H, W, 4)")
    if image.shape[0] <= 0 or image.shape[1] <= 0:
        raise ValueError("image must not be empty")


def fill_rect(dst: np.ndarray, x0: int, y0: int, x1: int, y1: int, color: RGBA) -> None:
    """Alpha-blend ``color`` over the inclusive pixel box, clipped to ``dst``."""
    left = max(0, min(x0, x1))
    right = min(dst.shape[1] - 1, max(x0, x1))
    top = max(0, min(y0, y1))
    bottom = min(dst.shape[0] - 1, max(y0, y1))
    if right < left or bottom < top:
        return
    _blend(dst[top : bottom + 1, left : right + 1], color)


def draw_hline(dst: np.ndarray, x0: int, x1: int, y: int, color: RGBA) -> None:
    if 0 <= y < dst.shape[0]:
        fill_rect(dst, x0, y, x1, y, color)


def draw_vline(dst: np.ndarray, x: int, y0: int, y1: int, color: RGBA) -> None:
    if 0 <= x < dst.shape[1]:
        fill_rect(dst, x, y0, x, y1, color)


def stroke_rect(dst: np.ndarray, x0: int, y0: int, x1: int, y1: int, color: RGBA, width: int = 1) -> None:
    for i in range(max(1, width)):
        draw_hline(dst, x0, x1, min(y0, y1) + i, color)
        draw_hline(dst, x0, x1, max(y0, y1) - i, color)
        draw_vline(dst, min(x0, x1) + i, y0, y1, color)
        draw_vline(dst, max(x0, x1) - i, y0, y1, color)


def _blend(view: np.ndarray, color: RGBA) -> None:
    a = color[3] / 255.0
    inv = 1.0 - a
    src = np.asarray(color[0:3], dtype=np.float32)
    view[..., :3] = (src * a + view[..., :3].astype(np.float32) * inv).astype(np.uint8)
    view[..., 3] = 255
