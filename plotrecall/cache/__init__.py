from .keys import cache_key_digest, canonical_key_bytes
from .plot_cache import DEFAULT_CAPACITY, CacheMiss, PlotCache, RenderedPlot
from .scopes import CacheScopes
from .sizing import RenderSize, SizeBucket, SizingPolicy
from .sqlite_storage import SQLiteStorage
from .storage import CacheStorage, MemoryStorage

__all__ = [
    "CacheMiss",
    "CacheScopes",
    "CacheStorage",
    "DEFAULT_CAPACITY",
    "MemoryStorage",
    "PlotCache",
    "RenderSize",
    "RenderedPlot",
    "SQLiteStorage",
    "SizeBucket",
    "SizingPolicy",
    "cache_key_digest",
    "canonical_key_bytes",
]
