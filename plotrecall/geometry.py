from __future__ import annotations

from dataclasses import dataclass
import math

from plotrecall.errors import InvalidRectangle


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned brush region in data coordinates, closed on every edge."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def __post_init__(self) -> None:
        bounds = (self.xmin, self.xmax, self.ymin, self.ymax)
        if any(math.isnan(float(v)) for v in bounds):
            raise InvalidRectangle(f"rectangle bounds must not be NaN: {bounds}")
        if self.xmin > self.xmax:
            raise InvalidRectangle(f"xmin > xmax: {self.xmin} > {self.xmax}")
        if self.ymin > self.ymax:
            raise InvalidRectangle(f"ymin > ymax: {self.ymin} > {self.ymax}")

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Rectangle":
        return cls(xmin=min(x0, x1), xmax=max(x0, x1), ymin=min(y0, y1), ymax=max(y0, y1))

    @classmethod
    def x_span(cls, xmin: float, xmax: float) -> "Rectangle":
        return cls(xmin=xmin, xmax=xmax, ymin=-math.inf, ymax=math.inf)

    @classmethod
    def y_span(cls, ymin: float, ymax: float) -> "Rectangle":
        return cls(xmin=-math.inf, xmax=math.inf, ymin=ymin, ymax=ymax)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def contains(self, point: Point) -> bool:
        return self.xmin <= point.x <= self.xmax and self.ymin <= point.y <= self.ymax
