from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from functools import lru_cache
import math
from typing import Union

from plotrecall.errors import InvalidSize


DEFAULT_MIN_SIZE = 50
DEFAULT_MAX_SIZE = 4096
DEFAULT_GROWTH_RATIO = 1.2


@dataclass(frozen=True)
class RenderSize:
    """Size requested by the host, in logical pixels."""

    width: float
    height: float
    pixel_ratio: float = 1.0

    def __post_init__(self) -> None:
        for label, value in (("width", self.width), ("height", self.height), ("pixel_ratio", self.pixel_ratio)):
            if not math.isfinite(value) or value <= 0:
                raise InvalidSize(f"{label} must be > 0, got {value!r}")

    @property
    def device_size(self) -> tuple[int, int]:
        return (
            max(1, int(round(self.width * self.pixel_ratio))),
            max(1, int(round(self.height * self.pixel_ratio))),
        )


@dataclass(frozen=True)
class SizeBucket:
    width: int
    height: int
    pixel_ratio: float = 1.0

    @property
    def device_size(self) -> tuple[int, int]:
        return (
            max(1, int(math.ceil(self.width * self.pixel_ratio))),
            max(1, int(math.ceil(self.height * self.pixel_ratio))),
        )


SizeLike = Union[RenderSize, tuple[float, float], tuple[float, float, float]]


def coerce_size(size: SizeLike) -> RenderSize:
    if isinstance(size, RenderSize):
        return size
    if isinstance(size, SizeBucket):
        return RenderSize(width=size.width, height=size.height, pixel_ratio=size.pixel_ratio)
    try:
        values = tuple(float(v) for v in size)
    except (TypeError, ValueError) as exc:
        raise InvalidSize(f"unsupported size value: {size!r}") from exc
    if len(values) == 2:
        return RenderSize(width=values[0], height=values[1])
    if len(values) == 3:
        return RenderSize(width=values[0], height=values[1], pixel_ratio=values[2])
    raise InvalidSize(f"size must be (width, height) or (width, height, pixel_ratio), got {size!r}")


@dataclass(frozen=True)
class SizingPolicy:
    """Discrete growth ladder that bounds the number of cached sizes per key.

    Each rung is ``ceil(min_size * growth_ratio**k)``; the last rung is
    ``max_size``. A requested dimension maps to the smallest rung that is at
    least as large, so the cached raster never has to be upscaled unless the
    request exceeds ``max_size``.
    """

    min_size: int = DEFAULT_MIN_SIZE
    max_size: int = DEFAULT_MAX_SIZE
    growth_ratio: float = DEFAULT_GROWTH_RATIO

    def __post_init__(self) -> None:
        if self.min_size < 1:
            raise ValueError("sizing.min_size must be >= 1")
        if self.max_size < self.min_size:
            raise ValueError("sizing.max_size must be >= sizing.min_size")
        if not math.isfinite(self.growth_ratio) or self.growth_ratio <= 1.0:
            raise ValueError("sizing.growth_ratio must be > 1")

    def rungs(self) -> tuple[int, ...]:
        return _ladder(int(self.min_size), int(self.max_size), float(self.growth_ratio))

    def bucket_dimension(self, value: float) -> int:
        if not math.isfinite(value) or value <= 0:
            raise InvalidSize(f"dimension must be > 0, got {value!r}")
        rungs = self.rungs()
        idx = bisect_left(rungs, value)
        if idx >= len(rungs):
            return rungs[-1]
        return rungs[idx]

    def canonicalize(self, size: SizeLike) -> SizeBucket:
        requested = coerce_size(size)
        return SizeBucket(
            width=self.bucket_dimension(requested.width),
            height=self.bucket_dimension(requested.height),
            pixel_ratio=bucket_pixel_ratio(requested.pixel_ratio),
        )


def bucket_pixel_ratio(value: float) -> float:
    """Pixel ratios are kept to two decimals so near-identical displays share entries."""
    return max(0.01, round(float(value), 2))


@lru_cache(maxsize=32)
def _ladder(min_size: int, max_size: int, growth_ratio: float) -> tuple[int, ...]:
    rungs = [min_size]
    k = 1
    while rungs[-1] < max_size:
        nxt = int(math.ceil(round(min_size * growth_ratio**k, 9)))
        k += 1
        if nxt <= rungs[-1]:
            continue
        rungs.append(min(nxt, max_size))
    return tuple(rungs)
