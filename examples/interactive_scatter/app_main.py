from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pandas as pd

from plotrecall import (
    CacheScopes,
    HitTester,
    Point,
    ReactiveValue,
    Rectangle,
    RenderSize,
    ScatterPlot,
    encode_png,
    observe_event,
)


class InteractiveScatterSession:
    """One viewer's scatter plot: clicks toggle rows, drags brush a region."""

    def __init__(self, data: pd.DataFrame, scopes: CacheScopes, session_id: str, size: RenderSize) -> None:
        self.data = data
        self.size = size
        self.plot = ScatterPlot.from_dataset(data, "wt", "mpg")
        self.cache = scopes.for_session(session_id)
        self.tester = HitTester()
        self.selected = ReactiveValue(np.zeros(len(data.index), dtype=bool))
        self.brush: ReactiveValue[Rectangle | None] = ReactiveValue(None)
        self.frames: list[np.ndarray] = []
        self._observers = [
            observe_event(self.selected, lambda _: self.refresh()),
            observe_event(self.brush, self._on_brush),
        ]

    def click(self, x: float, y: float) -> None:
        bucket = self.cache.bucket_for(self.size)
        transform = self.plot.display_layout(bucket, self.size)
        hits = self.tester.nearest(self.data, Point(x, y), "wt", "mpg", transform)
        self.selected.set(hits.toggle(self.selected.get()))

    def drag(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.brush.set(Rectangle.from_corners(x0, y0, x1, y1))

    def refresh(self) -> np.ndarray:
        selected = self.selected.get()
        brush = self.brush.get()
        key = {"plot": "wt-mpg", "selected": selected, "brush": brush}
        result = self.cache.render(key, self.size, lambda bucket: self.plot.draw(bucket, selected=selected, brush=brush))
        self.frames.append(result.image)
        return result.image

    def stop(self) -> None:
        for observer in self._observers:
            observer.destroy()

    def _on_brush(self, rect: Rectangle | None) -> None:
        if rect is None:
            return
        hits = self.tester.within(self.data, rect, "wt", "mpg")
        if not self.selected.set(hits.selected_mask(len(self.data.index))):
            self.refresh()


def demo_data() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "wt": [2.62, 2.875, 2.32, 3.215, 3.44, 3.46, 3.57, 3.19, 3.15, 3.44, 5.25, 1.615],
            "mpg": [21.0, 21.0, 22.8, 21.4, 18.7, 18.1, 14.3, 24.4, 22.8, 19.2, 10.4, 30.4],
        }
    )


def main(out_dir: str = "out") -> int:
    scopes = CacheScopes()
    session = InteractiveScatterSession(demo_data(), scopes, "viewer-1", RenderSize(width=480, height=320))
    try:
        session.refresh()
        session.click(5.25, 10.4)
        session.drag(3.0, 15.0, 3.6, 22.0)
        target = Path(out_dir)
        target.mkdir(parents=True, exist_ok=True)
        for i, frame in enumerate(session.frames):
            (target / f"frame_{i}.png").write_bytes(encode_png(frame))
        print(f"wrote {len(session.frames)} frames to {target} cache={session.cache.stats()}")
    finally:
        session.stop()
        scopes.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main(*sys.argv[1:]))
