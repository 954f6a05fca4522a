from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any, Literal

from plotrecall.cache.plot_cache import DEFAULT_CAPACITY, PlotCache
from plotrecall.cache.sizing import SizingPolicy
from plotrecall.cache.sqlite_storage import SQLiteStorage
from plotrecall.cache.storage import MemoryStorage


DEFAULT_THRESHOLD_PX = 5.0
CONFIG_ENV_VAR = "PLOTRECALL_CONFIG"

StorageKind = Literal["memory", "sqlite"]


@dataclass(frozen=True)
class HitTestConfig:
    threshold_px: float = DEFAULT_THRESHOLD_PX
    max_points: int | None = None

    def __post_init__(self) -> None:
        if self.threshold_px < 0:
            raise ValueError("hit_test.threshold_px must be >= 0")
        if self.max_points is not None and self.max_points <= 0:
            raise ValueError("hit_test.max_points must be > 0")


@dataclass(frozen=True)
class CacheConfig:
    capacity: int = DEFAULT_CAPACITY
    storage: StorageKind = "memory"
    sqlite_path: Path | None = None

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError("cache.capacity must be > 0")
        if self.storage not in ("memory", "sqlite"):
            raise ValueError(f"cache.storage must be 'memory' or 'sqlite', got {self.storage!r}")
        if self.storage == "sqlite" and self.sqlite_path is None:
            raise ValueError("cache.sqlite_path is required when cache.storage = 'sqlite'")


@dataclass(frozen=True)
class PlotRecallConfig:
    hit_test: HitTestConfig = field(default_factory=HitTestConfig)
    sizing: SizingPolicy = field(default_factory=SizingPolicy)
    cache: CacheConfig = field(default_factory=CacheConfig)


def load_config(path: str | Path) -> PlotRecallConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    unknown = set(raw) - {"hit_test", "sizing", "cache"}
    if unknown:
        raise ValueError(f"unknown config sections: {sorted(unknown)}")

    hit_raw = _section(raw, "hit_test", {"threshold_px", "max_points"})
    sizing_raw = _section(raw, "sizing", {"min_size", "max_size", "growth_ratio"})
    cache_raw = _section(raw, "cache", {"capacity", "storage", "sqlite_path"})

    if "sqlite_path" in cache_raw:
        sqlite_path = Path(str(cache_raw["sqlite_path"]))
        if not sqlite_path.is_absolute():
            sqlite_path = config_path.parent / sqlite_path
        cache_raw["sqlite_path"] = sqlite_path

    try:
        return PlotRecallConfig(
            hit_test=HitTestConfig(**hit_raw),
            sizing=SizingPolicy(**sizing_raw),
            cache=CacheConfig(**cache_raw),
        )
    except TypeError as exc:
        raise ValueError(f"invalid config value in {config_path}: {exc}") from exc


def config_from_env() -> PlotRecallConfig:
    path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return PlotRecallConfig()
    return load_config(path)


def build_cache(config: PlotRecallConfig) -> PlotCache:
    if config.cache.storage == "sqlite":
        assert config.cache.sqlite_path is not None
        storage = SQLiteStorage(config.cache.sqlite_path)
    else:
        storage = MemoryStorage()
    return PlotCache(storage=storage, sizing=config.sizing, capacity=config.cache.capacity)


def _section(raw: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"config section [{name}] must be a table")
    unknown = set(value) - allowed
    if unknown:
        raise ValueError(f"unknown keys in [{name}]: {sorted(unknown)}")
    return dict(value)
