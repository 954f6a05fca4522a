from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from plotrecall.adapters import resolve_xy
from plotrecall.cache.sizing import RenderSize, SizeBucket, SizeLike, coerce_size
from plotrecall.geometry import Rectangle
from plotrecall.raster import draw_hline, draw_markers, draw_vline, fill_rect, new_canvas, stroke_rect
from plotrecall.raster.canvas import RGBA
from plotrecall.scales import DataLimits, PlotTransform, build_transform, compute_limits, generate_nice_ticks


@dataclass(frozen=True)
class ScatterStyle:
    background: RGBA = (12, 16, 23, 255)
    plot_bg_color: RGBA = (20, 26, 36, 255)
    frame_color: RGBA = (60, 67, 78, 255)
    grid_color: RGBA = (44, 53, 66, 255)
    marker_color: RGBA = (62, 149, 255, 255)
    selected_color: RGBA = (255, 170, 70, 255)
    brush_fill: RGBA = (90, 190, 255, 60)
    brush_stroke: RGBA = (90, 190, 255, 200)
    marker_size: int = 3

    # gutters in logical pixels
    gutter_left: int = 40
    gutter_right: int = 12
    gutter_top: int = 12
    gutter_bottom: int = 28


class ScatterPlot:
    """Scatter plot whose layout is shared between drawing and hit-testing.

    ``layout()`` returns exactly the transform ``draw()`` uses for a size,
    so pointer positions on the raster map back to the plotted rows.
    """

    def __init__(
        self,
        x: np.ndarray,
        y: np.ndarray,
        *,
        style: ScatterStyle | None = None,
        limits: DataLimits | None = None,
    ) -> None:
        self.x = np.asarray(x, dtype=np.float64)
        self.y = np.asarray(y, dtype=np.float64)
        if self.x.shape != self.y.shape or self.x.ndim != 1:
            raise ValueError("x and y must be 1-D arrays of equal length")
        self.style = style or ScatterStyle()
        self.limits = limits or compute_limits(self.x, self.y)

    @classmethod
    def from_dataset(cls, dataset: Any, x_field: str, y_field: str, **kwargs: Any) -> "ScatterPlot":
        x, y = resolve_xy(dataset, x_field, y_field)
        return cls(x, y, **kwargs)

    def layout(self, width: float, height: float, pixel_ratio: float = 1.0) -> PlotTransform:
        s = self.style
        plot_w = max(2.0, width - s.gutter_left - s.gutter_right)
        plot_h = max(2.0, height - s.gutter_top - s.gutter_bottom)
        return build_transform(self.limits, (s.gutter_left, s.gutter_top, plot_w, plot_h), pixel_ratio=pixel_ratio)

    def display_layout(self, bucket: SizeBucket, requested: SizeLike) -> PlotTransform:
        """Transform for a bucket raster after it is scaled to the requested display size."""
        size: RenderSize = coerce_size(requested)
        base = self.layout(bucket.width, bucket.height, bucket.pixel_ratio)
        return base.scaled(size.width / bucket.width, size.height / bucket.height, pixel_ratio=size.pixel_ratio)

    def draw(
        self,
        bucket: SizeBucket,
        *,
        selected: np.ndarray | None = None,
        brush: Rectangle | None = None,
    ) -> np.ndarray:
        s = self.style
        device_w, device_h = bucket.device_size
        transform = self.layout(bucket.width, bucket.height, bucket.pixel_ratio)
        canvas = new_canvas(device_w, device_h, color=s.background)

        x0, y0 = transform.data_to_device(self.limits.xmin, self.limits.ymax)
        x1, y1 = transform.data_to_device(self.limits.xmax, self.limits.ymin)
        left, top, right, bottom = int(round(float(x0))), int(round(float(y0))), int(round(float(x1))), int(round(float(y1)))
        fill_rect(canvas, left, top, right, bottom, s.plot_bg_color)

        for tick in generate_nice_ticks(self.limits.xmin, self.limits.xmax, 6).tolist():
            gx, _ = transform.data_to_device(tick, self.limits.ymin)
            draw_vline(canvas, int(round(float(gx))), top, bottom, s.grid_color)
        for tick in generate_nice_ticks(self.limits.ymin, self.limits.ymax, 5).tolist():
            _, gy = transform.data_to_device(self.limits.xmin, tick)
            draw_hline(canvas, left, right, int(round(float(gy))), s.grid_color)
        stroke_rect(canvas, left, top, right, bottom, s.frame_color)

        if brush is not None and _intersects(brush, self.limits):
            bx0, by0 = transform.data_to_device(max(brush.xmin, self.limits.xmin), min(brush.ymax, self.limits.ymax))
            bx1, by1 = transform.data_to_device(min(brush.xmax, self.limits.xmax), max(brush.ymin, self.limits.ymin))
            box = (int(round(float(bx0))), int(round(float(by0))), int(round(float(bx1))), int(round(float(by1))))
            fill_rect(canvas, *box, s.brush_fill)
            stroke_rect(canvas, *box, s.brush_stroke)

        marker_px = max(1, int(round(s.marker_size * bucket.pixel_ratio)))
        px, py = transform.data_to_device(self.x, self.y)
        if selected is None:
            draw_markers(canvas, px, py, s.marker_color, size=marker_px)
        else:
            mask = np.asarray(selected, dtype=bool)
            if mask.shape != self.x.shape:
                raise ValueError("selected mask must match the number of rows")
            draw_markers(canvas, px[~mask], py[~mask], s.marker_color, size=marker_px)
            draw_markers(canvas, px[mask], py[mask], s.selected_color, size=marker_px)
        return canvas


def _intersects(brush: Rectangle, limits: DataLimits) -> bool:
    return not (
        brush.xmax < limits.xmin
        or brush.xmin > limits.xmax
        or brush.ymax < limits.ymin
        or brush.ymin > limits.ymax
    )
