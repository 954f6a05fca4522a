from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from plotrecall import (
    CacheScopes,
    HitTester,
    Point,
    Rectangle,
    RenderSize,
    ScatterPlot,
    SQLiteStorage,
    config_from_env,
    encode_png,
    load_config,
)
from plotrecall.cache import cache_key_digest


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="plotrecall")
    parser.add_argument("--config", type=Path, default=None, help="TOML config file. Default: $PLOTRECALL_CONFIG.")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render a CSV scatter plot to PNG through the plot cache.")
    _add_data_args(render)
    _add_size_args(render)
    render.add_argument("--out", type=Path, required=True)
    render.add_argument("--cache-db", type=Path, default=None, help="Persist rendered plots in this SQLite file. Default: [cache] settings of the config.")
    render.add_argument("--select-x", type=float, default=None, help="Highlight points near this data x.")
    render.add_argument("--select-y", type=float, default=None, help="Highlight points near this data y.")

    near = sub.add_parser("near", help="Print rows within a pixel threshold of a data point.")
    _add_data_args(near)
    _add_size_args(near)
    near.add_argument("--at", type=float, nargs=2, metavar=("X", "Y"), required=True)
    near.add_argument("--threshold", type=float, default=None)
    near.add_argument("--max-points", type=int, default=None)
    near.add_argument("--all-rows", action="store_true")
    near.add_argument("--distance", action="store_true")

    brush = sub.add_parser("brush", help="Print rows inside a data-space rectangle.")
    _add_data_args(brush)
    brush.add_argument("--rect", type=float, nargs=4, metavar=("XMIN", "XMAX", "YMIN", "YMAX"), required=True)
    brush.add_argument("--all-rows", action="store_true")

    report = sub.add_parser("cache-report", help="Print entry count and size of a persistent plot cache.")
    report.add_argument("--cache-db", type=Path, required=True)

    clear = sub.add_parser("cache-clear", help="Delete every entry of a persistent plot cache.")
    clear.add_argument("--cache-db", type=Path, required=True)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    config = load_config(args.config) if args.config is not None else config_from_env()

    if args.command == "render":
        data = pd.read_csv(args.csv)
        plot = ScatterPlot.from_dataset(data, args.x, args.y)
        size = RenderSize(width=args.width, height=args.height, pixel_ratio=args.pixel_ratio)
        selected = None
        if args.select_x is not None and args.select_y is not None:
            transform = plot.display_layout(config.sizing.canonicalize(size), size)
            hits = HitTester(config.hit_test).nearest(data, Point(args.select_x, args.select_y), args.x, args.y, transform)
            selected = hits.selected_mask(len(data.index))

        app_storage: SQLiteStorage | None = None
        if args.cache_db is not None:
            app_storage = SQLiteStorage(args.cache_db)
        elif config.cache.storage == "sqlite":
            app_storage = SQLiteStorage(config.cache.sqlite_path)
        scopes = CacheScopes(app_storage, sizing=config.sizing, capacity=config.cache.capacity)
        try:
            key = {
                "data": data,
                "x": args.x,
                "y": args.y,
                "selected": selected,
            }
            result = scopes.app.render(key, size, lambda bucket: plot.draw(bucket, selected=selected))
        finally:
            scopes.close()
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_bytes(encode_png(result.image))
        print(
            f"render complete: cache_hit={result.cache_hit} "
            f"bucket={result.bucket.width}x{result.bucket.height} key={cache_key_digest(key)[:12]} out={args.out}"
        )
        return 0

    if args.command == "near":
        data = pd.read_csv(args.csv)
        plot = ScatterPlot.from_dataset(data, args.x, args.y)
        transform = plot.layout(args.width, args.height, args.pixel_ratio)
        hits = HitTester(config.hit_test).nearest(
            data,
            Point(*args.at),
            args.x,
            args.y,
            transform,
            threshold_px=args.threshold,
            all_rows=args.all_rows,
            include_distance=args.distance,
            max_points=args.max_points,
        )
        print(json.dumps(_rows_payload(data, hits), indent=2))
        return 0

    if args.command == "brush":
        data = pd.read_csv(args.csv)
        xmin, xmax, ymin, ymax = args.rect
        hits = HitTester(config.hit_test).within(
            data,
            Rectangle(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax),
            args.x,
            args.y,
            all_rows=args.all_rows,
        )
        print(json.dumps(_rows_payload(data, hits), indent=2))
        return 0

    if args.command == "cache-report":
        storage = SQLiteStorage(args.cache_db)
        try:
            print(json.dumps(storage.summarize(), indent=2, sort_keys=True))
        finally:
            storage.close()
        return 0

    if args.command == "cache-clear":
        storage = SQLiteStorage(args.cache_db)
        try:
            removed = len(storage.keys())
            storage.clear()
            print(f"cleared entries={removed}")
        finally:
            storage.close()
        return 0

    raise RuntimeError(f"unsupported command: {args.command}")


def _add_data_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("csv", type=Path)
    parser.add_argument("--x", required=True, help="Column plotted on the x axis.")
    parser.add_argument("--y", required=True, help="Column plotted on the y axis.")


def _add_size_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--width", type=float, default=640.0)
    parser.add_argument("--height", type=float, default=400.0)
    parser.add_argument("--pixel-ratio", type=float, default=1.0)


def _rows_payload(data: pd.DataFrame, hits) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for hit in hits:
        record = {str(k): _jsonable(v) for k, v in data.iloc[hit.index].items()}
        record["_index"] = hit.index
        record["_selected"] = hit.selected
        if hit.distance_px is not None:
            record["_distance_px"] = round(hit.distance_px, 3)
        rows.append(record)
    return rows


def _jsonable(value: object) -> object:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


if __name__ == "__main__":
    raise SystemExit(main())
