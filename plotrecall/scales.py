from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from plotrecall.errors import InvalidSize


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float


@dataclass(frozen=True)
class PlotTransform:
    """Affine map from data space to logical (CSS) pixels, y axis pointing down.

    ``origin_x``/``origin_y`` place the panel inside the full raster and
    ``pixel_ratio`` relates logical pixels to device pixels of the raster.
    """

    sx: float
    tx: float
    sy: float
    ty: float
    origin_x: float = 0.0
    origin_y: float = 0.0
    pixel_ratio: float = 1.0

    def data_to_pixels(self, x, y) -> tuple[np.ndarray, np.ndarray]:
        xs = np.asarray(x, dtype=np.float64)
        ys = np.asarray(y, dtype=np.float64)
        px = self.origin_x + xs * self.sx + self.tx
        py = self.origin_y + ys * self.sy + self.ty
        return px, py

    def data_to_device(self, x, y) -> tuple[np.ndarray, np.ndarray]:
        px, py = self.data_to_pixels(x, y)
        return px * self.pixel_ratio, py * self.pixel_ratio

    def scaled(self, fx: float, fy: float, *, pixel_ratio: float | None = None) -> "PlotTransform":
        """Transform for the same raster after it is stretched by (fx, fy) in logical pixels."""
        return PlotTransform(
            sx=self.sx * fx,
            tx=self.tx * fx,
            sy=self.sy * fy,
            ty=self.ty * fy,
            origin_x=self.origin_x * fx,
            origin_y=self.origin_y * fy,
            pixel_ratio=self.pixel_ratio if pixel_ratio is None else pixel_ratio,
        )

    def pixels_to_data(self, px: float, py: float, *, device: bool = False) -> tuple[float, float]:
        if device:
            px = px / self.pixel_ratio
            py = py / self.pixel_ratio
        x = (px - self.origin_x - self.tx) / self.sx
        y = (py - self.origin_y - self.ty) / self.sy
        return (float(x), float(y))


def compute_limits(
    x: np.ndarray,
    y: np.ndarray,
    mask: np.ndarray | None = None,
    *,
    buffer_ratio: float = 0.05,
) -> DataLimits:
    if mask is None:
        mask = np.isfinite(x) & np.isfinite(y)
    if not np.any(mask):
        return DataLimits(xmin=-1.0, xmax=1.0, ymin=-1.0, ymax=1.0)
    xmin, xmax = _padded_span(float(np.min(x[mask])), float(np.max(x[mask])), buffer_ratio)
    ymin, ymax = _padded_span(float(np.min(y[mask])), float(np.max(y[mask])), buffer_ratio)
    return DataLimits(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


def build_transform(
    limits: DataLimits,
    plot_rect: tuple[float, float, float, float],
    *,
    pixel_ratio: float = 1.0,
) -> PlotTransform:
    x0, y0, width, height = plot_rect
    if width <= 1 or height <= 1:
        raise InvalidSize("plot viewport width/height must be > 1")
    if pixel_ratio <= 0:
        raise InvalidSize("pixel_ratio must be > 0")
    sx = (width - 1) / (limits.xmax - limits.xmin)
    tx = -limits.xmin * sx
    sy = -(height - 1) / (limits.ymax - limits.ymin)
    ty = -limits.ymax * sy
    return PlotTransform(sx=sx, tx=tx, sy=sy, ty=ty, origin_x=float(x0), origin_y=float(y0), pixel_ratio=float(pixel_ratio))


def generate_nice_ticks(vmin: float, vmax: float, target: int) -> np.ndarray:
    if target <= 0:
        raise ValueError("target must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)
    step = _nice_number((vmax - vmin) / max(target - 1, 1))
    first = np.ceil(vmin / step) * step
    ticks = np.arange(first, vmax + 0.5 * step, step, dtype=np.float64)
    ticks = ticks[ticks <= vmax]
    # Snap float drift like -4.4e-16 back to 0.
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def _padded_span(lo: float, hi: float, ratio: float) -> tuple[float, float]:
    if lo == hi:
        delta = max(1.0, abs(lo) * ratio)
        return lo - delta, hi + delta
    pad = (hi - lo) * ratio
    return lo - pad, hi + pad


def _nice_number(value: float) -> float:
    exp = np.floor(np.log10(value))
    frac = value / (10**exp)
    if frac < 1.5:
        nice = 1.0
    elif frac < 3.0:
        nice = 2.0
    elif frac < 7.0:
        nice = 5.0
    else:
        nice = 10.0
    return float(nice * (10**exp))
