from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np

from plotrecall.adapters import dataset_length, resolve_xy, take_rows
from plotrecall.config import DEFAULT_THRESHOLD_PX, HitTestConfig
from plotrecall.geometry import Point, Rectangle
from plotrecall.scales import PlotTransform


@dataclass(frozen=True)
class HitRow:
    index: int
    selected: bool
    distance_px: float | None = None


@dataclass(frozen=True)
class HitResult:
    rows: tuple[HitRow, ...] = ()
    dataset_length: int | None = None

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[HitRow]:
        return iter(self.rows)

    def __getitem__(self, item: int) -> HitRow:
        return self.rows[item]

    @property
    def indices(self) -> list[int]:
        return [row.index for row in self.rows if row.selected]

    def selected_mask(self, length: int | None = None) -> np.ndarray:
        """Boolean mask over the dataset the result was computed from."""
        if length is None:
            length = self.dataset_length
        if length is None:
            raise ValueError("length is required for results not built from a dataset")
        mask = np.zeros(length, dtype=bool)
        for row in self.rows:
            if row.selected:
                mask[row.index] = True
        return mask

    def take(self, dataset: Any) -> Any:
        return take_rows(dataset, self.indices)

    def toggle(self, mask: np.ndarray) -> np.ndarray:
        """Flip the selected rows in an existing selection mask."""
        out = np.asarray(mask, dtype=bool).copy()
        out ^= self.selected_mask(out.size)
        return out


def nearest(
    dataset: Any,
    point: Point,
    x_field: str,
    y_field: str,
    transform: PlotTransform,
    *,
    threshold_px: float = DEFAULT_THRESHOLD_PX,
    all_rows: bool = False,
    include_distance: bool = False,
    max_points: int | None = None,
) -> HitResult:
    if threshold_px < 0:
        raise ValueError("threshold_px must be >= 0")
    if max_points is not None and max_points <= 0:
        raise ValueError("max_points must be > 0")
    if dataset_length(dataset) == 0:
        return HitResult(dataset_length=0)
    x, y = resolve_xy(dataset, x_field, y_field)

    px, py = transform.data_to_pixels(x, y)
    cx, cy = transform.data_to_pixels(point.x, point.y)
    dist = np.hypot(px - cx, py - cy)
    finite = np.isfinite(dist)
    matched = finite & (dist <= threshold_px)

    if max_points is not None:
        candidates = np.flatnonzero(matched)
        if candidates.size > max_points:
            # Stable sort keeps row order among equal distances.
            closest = candidates[np.argsort(dist[candidates], kind="stable")[:max_points]]
            matched = np.zeros_like(matched)
            matched[closest] = True

    return _build_result(matched, dist if include_distance else None, all_rows=all_rows)


def within(
    dataset: Any,
    rect: Rectangle,
    x_field: str,
    y_field: str,
    *,
    all_rows: bool = False,
) -> HitResult:
    if dataset_length(dataset) == 0:
        return HitResult(dataset_length=0)
    x, y = resolve_xy(dataset, x_field, y_field)
    # NaN comparisons are False, so incomplete rows never match.
    matched = (x >= rect.xmin) & (x <= rect.xmax) & (y >= rect.ymin) & (y <= rect.ymax)
    return _build_result(matched, None, all_rows=all_rows)


def _build_result(matched: np.ndarray, dist: np.ndarray | None, *, all_rows: bool) -> HitResult:
    indices = range(matched.size) if all_rows else np.flatnonzero(matched).tolist()
    rows = []
    for i in indices:
        distance = None
        if dist is not None and np.isfinite(dist[i]):
            distance = float(dist[i])
        rows.append(HitRow(index=int(i), selected=bool(matched[i]), distance_px=distance))
    return HitResult(rows=tuple(rows), dataset_length=int(matched.size))


# Default for arguments taken from HitTestConfig; None stays an explicit value.
_FROM_CONFIG: Any = object()


class HitTester:
    """Hit-testing with thresholds taken from a :class:`HitTestConfig`."""

    def __init__(self, config: HitTestConfig | None = None) -> None:
        self.config = config or HitTestConfig()

    def nearest(
        self,
        dataset: Any,
        point: Point,
        x_field: str,
        y_field: str,
        transform: PlotTransform,
        *,
        threshold_px: float | None = None,
        all_rows: bool = False,
        include_distance: bool = False,
        max_points: int | None = _FROM_CONFIG,
    ) -> HitResult:
        return nearest(
            dataset,
            point,
            x_field,
            y_field,
            transform,
            threshold_px=self.config.threshold_px if threshold_px is None else threshold_px,
            all_rows=all_rows,
            include_distance=include_distance,
            max_points=self.config.max_points if max_points is _FROM_CONFIG else max_points,
        )

    def within(self, dataset: Any, rect: Rectangle, x_field: str, y_field: str, *, all_rows: bool = False) -> HitResult:
        return within(dataset, rect, x_field, y_field, all_rows=all_rows)
