from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
import logging
import threading
from typing import Any, Callable

import numpy as np

from plotrecall.cache.keys import cache_key_digest
from plotrecall.cache.sizing import RenderSize, SizeBucket, SizeLike, SizingPolicy, bucket_pixel_ratio, coerce_size
from plotrecall.cache.storage import CacheStorage
from plotrecall.errors import CacheUnavailable
from plotrecall.raster import fit_to_size, validate_rgba


LOGGER = logging.getLogger(__name__)
DEFAULT_CAPACITY = 128

DrawFn = Callable[[SizeBucket], np.ndarray]


@dataclass(frozen=True)
class CacheMiss:
    bucket: SizeBucket


@dataclass(frozen=True)
class RenderedPlot:
    image: np.ndarray
    bucket: SizeBucket
    cache_hit: bool


@dataclass
class _PendingRender:
    done: threading.Event = field(default_factory=threading.Event)
    image: np.ndarray | None = None


class PlotCache:
    """Raster cache keyed by (cache key, size bucket) with LRU eviction.

    Bucketing, key canonicalization and recency tracking happen here; the
    storage backend only decides where images live and for how long.
    """

    def __init__(
        self,
        storage: CacheStorage,
        *,
        sizing: SizingPolicy | None = None,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.storage = storage
        self.sizing = sizing or SizingPolicy()
        self.capacity = capacity
        self._lock = threading.RLock()
        self._recency: OrderedDict[str, None] = OrderedDict()
        self._inflight: dict[str, _PendingRender] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._attach()

    def _attach(self) -> None:
        try:
            for slot in self.storage.keys():
                self._recency[slot] = None
            self._evict_overflow()
        except CacheUnavailable as exc:
            LOGGER.warning("plot cache storage unavailable at startup: %s", exc)

    def bucket_for(self, requested_size: SizeLike) -> SizeBucket:
        return self.sizing.canonicalize(requested_size)

    def lookup(self, key: Any, requested_size: SizeLike) -> np.ndarray | CacheMiss:
        bucket = self.bucket_for(requested_size)
        slot = _slot_id(cache_key_digest(key), bucket)
        image = self._lookup_slot(slot)
        if image is None:
            return CacheMiss(bucket=bucket)
        return image

    def store(self, key: Any, bucket: SizeBucket, image: np.ndarray) -> None:
        validate_rgba(image)
        slot = _slot_id(cache_key_digest(key), bucket)
        self._store_slot(slot, image)

    def invalidate_all(self) -> None:
        with self._lock:
            self._recency.clear()
            self.storage.clear()
        LOGGER.debug("plot cache invalidated")

    def render(self, key: Any, requested_size: SizeLike, draw: DrawFn) -> RenderedPlot:
        """Return the plot for ``key`` at ``requested_size``, drawing it on a miss.

        Concurrent callers missing on the same slot wait for a single draw.
        Storage failures degrade to an uncached render.
        """
        requested = coerce_size(requested_size)
        bucket = self.bucket_for(requested)
        slot = _slot_id(cache_key_digest(key), bucket)

        while True:
            # Lookup and in-flight registration share one critical section so a
            # render finishing in between cannot trigger a second draw.
            with self._lock:
                try:
                    cached = self._lookup_slot(slot)
                except CacheUnavailable as exc:
                    LOGGER.warning("plot cache lookup failed, rendering uncached: %s", exc)
                    cached = None
                    pending = None
                    owner = False
                else:
                    pending = self._inflight.get(slot) if cached is None else None
                    owner = cached is None and pending is None
                    if owner:
                        pending = _PendingRender()
                        self._inflight[slot] = pending
            if cached is not None:
                return self._finish(cached, bucket, requested, cache_hit=True)
            if pending is None:
                return self._finish(self._draw(draw, bucket), bucket, requested, cache_hit=False)

            if not owner:
                pending.done.wait()
                if pending.image is not None:
                    return self._finish(pending.image.copy(), bucket, requested, cache_hit=True)
                # The owning render failed; try again as a new owner.
                continue

            try:
                image = self._draw(draw, bucket)
                pending.image = image
                try:
                    self._store_slot(slot, image)
                except CacheUnavailable as exc:
                    LOGGER.warning("plot cache store failed, result not cached: %s", exc)
            finally:
                with self._lock:
                    self._inflight.pop(slot, None)
                pending.done.set()
            return self._finish(image.copy(), bucket, requested, cache_hit=False)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._recency),
                "capacity": self.capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _lookup_slot(self, slot: str) -> np.ndarray | None:
        with self._lock:
            image = self.storage.get(slot)
            if image is None:
                self._recency.pop(slot, None)
                self._misses += 1
                LOGGER.debug("plot cache miss slot=%s", slot)
                return None
            self.storage.touch(slot)
            self._recency[slot] = None
            self._recency.move_to_end(slot)
            self._hits += 1
            LOGGER.debug("plot cache hit slot=%s", slot)
            return image

    def _store_slot(self, slot: str, image: np.ndarray) -> None:
        with self._lock:
            self.storage.put(slot, image)
            self._recency[slot] = None
            self._recency.move_to_end(slot)
            self._evict_overflow()

    def _evict_overflow(self) -> None:
        while len(self._recency) > self.capacity:
            oldest, _ = self._recency.popitem(last=False)
            self.storage.delete(oldest)
            self._evictions += 1
            LOGGER.debug("plot cache evicted slot=%s", oldest)

    @staticmethod
    def _draw(draw: DrawFn, bucket: SizeBucket) -> np.ndarray:
        image = draw(bucket)
        validate_rgba(image)
        return image

    @staticmethod
    def _finish(image: np.ndarray, bucket: SizeBucket, requested: RenderSize, *, cache_hit: bool) -> RenderedPlot:
        width, height = requested.device_size
        return RenderedPlot(image=fit_to_size(image, width, height), bucket=bucket, cache_hit=cache_hit)


def _slot_id(key_digest: str, bucket: SizeBucket) -> str:
    return f"{key_digest}:{bucket.width}x{bucket.height}@{bucket_pixel_ratio(bucket.pixel_ratio):.2f}"
