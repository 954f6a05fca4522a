from plotrecall.cache import (
    CacheMiss,
    CacheScopes,
    MemoryStorage,
    PlotCache,
    RenderSize,
    RenderedPlot,
    SizeBucket,
    SizingPolicy,
    SQLiteStorage,
)
from plotrecall.compile import decode_png, encode_png, to_frame_tensor
from plotrecall.config import CacheConfig, HitTestConfig, PlotRecallConfig, build_cache, config_from_env, load_config
from plotrecall.errors import (
    CacheUnavailable,
    InvalidCacheKey,
    InvalidDataset,
    InvalidField,
    InvalidRectangle,
    InvalidSize,
    PlotRecallError,
)
from plotrecall.geometry import Point, Rectangle
from plotrecall.interact import HitResult, HitRow, HitTester, nearest, within
from plotrecall.reactive import Observer, ReactiveValue, observe_event
from plotrecall.render import ScatterPlot, ScatterStyle
from plotrecall.scales import DataLimits, PlotTransform, build_transform

__all__ = [
    "CacheConfig",
    "CacheMiss",
    "CacheScopes",
    "CacheUnavailable",
    "DataLimits",
    "HitResult",
    "HitRow",
    "HitTestConfig",
    "HitTester",
    "InvalidCacheKey",
    "InvalidDataset",
    "InvalidField",
    "InvalidRectangle",
    "InvalidSize",
    "MemoryStorage",
    "Observer",
    "PlotCache",
    "PlotRecallConfig",
    "PlotRecallError",
    "PlotTransform",
    "Point",
    "ReactiveValue",
    "Rectangle",
    "RenderSize",
    "RenderedPlot",
    "SQLiteStorage",
    "ScatterPlot",
    "ScatterStyle",
    "SizeBucket",
    "SizingPolicy",
    "build_cache",
    "build_transform",
    "config_from_env",
    "decode_png",
    "encode_png",
    "load_config",
    "nearest",
    "observe_event",
    "to_frame_tensor",
    "within",
]
