from __future__ import annotations

import threading
import time
import unittest

import numpy as np

from plotrecall.cache import CacheMiss, MemoryStorage, PlotCache, RenderSize, SizeBucket, SizingPolicy
from plotrecall.raster import new_canvas


def _solid(bucket: SizeBucket, value: int = 200) -> np.ndarray:
    width, height = bucket.device_size
    return new_canvas(width, height, color=(value, 0, 0, 255))


class LookupStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = PlotCache(MemoryStorage(), sizing=SizingPolicy(min_size=50, growth_ratio=1.2), capacity=8)

    def test_store_then_lookup_at_nearby_size_hits(self) -> None:
        first = self.cache.lookup("A", (100, 100))
        self.assertIsInstance(first, CacheMiss)
        image = _solid(first.bucket)
        self.cache.store("A", first.bucket, image)

        hit = self.cache.lookup("A", (102, 101))
        self.assertIsInstance(hit, np.ndarray)
        np.testing.assert_array_equal(hit, image)

    def test_lookup_is_idempotent_and_returns_copies(self) -> None:
        bucket = self.cache.bucket_for((200, 120))
        self.cache.store("A", bucket, _solid(bucket))
        a = self.cache.lookup("A", (200, 120))
        b = self.cache.lookup("A", (200, 120))
        np.testing.assert_array_equal(a, b)
        a[:] = 0
        np.testing.assert_array_equal(self.cache.lookup("A", (200, 120)), b)

    def test_keys_and_sizes_are_separate_slots(self) -> None:
        bucket = self.cache.bucket_for((100, 100))
        self.cache.store({"data": "mtcars", "x": "wt"}, bucket, _solid(bucket))
        self.assertIsInstance(self.cache.lookup({"x": "wt", "data": "mtcars"}, (100, 100)), np.ndarray)
        self.assertIsInstance(self.cache.lookup({"data": "mtcars", "x": "mpg"}, (100, 100)), CacheMiss)
        self.assertIsInstance(self.cache.lookup({"data": "mtcars", "x": "wt"}, (400, 100)), CacheMiss)
        self.assertIsInstance(self.cache.lookup({"data": "mtcars", "x": "wt"}, (100, 100, 2.0)), CacheMiss)

    def test_nearly_equal_pixel_ratios_share_a_slot(self) -> None:
        first = self.cache.lookup("A", (100, 100, 1.5000001))
        self.assertIsInstance(first, CacheMiss)
        self.cache.store("A", first.bucket, _solid(first.bucket))
        self.assertIsInstance(self.cache.lookup("A", (100, 100, 1.4999999)), np.ndarray)
        self.assertIsInstance(self.cache.lookup("A", (100, 100, 1.51)), CacheMiss)

    def test_store_overwrites(self) -> None:
        bucket = self.cache.bucket_for((100, 100))
        self.cache.store("A", bucket, _solid(bucket, 10))
        self.cache.store("A", bucket, _solid(bucket, 20))
        self.assertEqual(int(self.cache.lookup("A", (100, 100))[0, 0, 0]), 20)
        self.assertEqual(self.cache.stats()["entries"], 1)

    def test_store_rejects_non_rgba(self) -> None:
        bucket = self.cache.bucket_for((100, 100))
        with self.assertRaises(ValueError):
            self.cache.store("A", bucket, np.zeros((10, 10, 3), dtype=np.uint8))

    def test_invalidate_all_empties_cache(self) -> None:
        for name in ("A", "B", "C"):
            bucket = self.cache.bucket_for((100, 100))
            self.cache.store(name, bucket, _solid(bucket))
        self.cache.invalidate_all()
        for name in ("A", "B", "C"):
            self.assertIsInstance(self.cache.lookup(name, (100, 100)), CacheMiss)
        self.assertEqual(self.cache.stats()["entries"], 0)


class EvictionTests(unittest.TestCase):
    def test_least_recently_used_entry_is_evicted(self) -> None:
        storage = MemoryStorage()
        cache = PlotCache(storage, capacity=2)
        bucket = cache.bucket_for((100, 100))
        cache.store("A", bucket, _solid(bucket))
        cache.store("B", bucket, _solid(bucket))
        self.assertIsInstance(cache.lookup("A", (100, 100)), np.ndarray)

        cache.store("C", bucket, _solid(bucket))

        self.assertIsInstance(cache.lookup("A", (100, 100)), np.ndarray)
        self.assertIsInstance(cache.lookup("B", (100, 100)), CacheMiss)
        self.assertIsInstance(cache.lookup("C", (100, 100)), np.ndarray)
        self.assertEqual(len(storage), 2)
        self.assertEqual(cache.stats()["evictions"], 1)

    def test_entry_count_never_exceeds_capacity(self) -> None:
        cache = PlotCache(MemoryStorage(), capacity=3)
        bucket = cache.bucket_for((60, 60))
        for i in range(10):
            cache.store(("plot", i), bucket, _solid(bucket))
            self.assertLessEqual(cache.stats()["entries"], 3)

    def test_attaching_to_full_storage_trims_oldest(self) -> None:
        storage = MemoryStorage()
        seeded = PlotCache(storage, capacity=10)
        bucket = seeded.bucket_for((60, 60))
        for name in ("A", "B", "C", "D"):
            seeded.store(name, bucket, _solid(bucket))

        smaller = PlotCache(storage, capacity=2)

        self.assertEqual(len(storage), 2)
        self.assertIsInstance(smaller.lookup("A", (60, 60)), CacheMiss)
        self.assertIsInstance(smaller.lookup("D", (60, 60)), np.ndarray)

    def test_invalid_capacity(self) -> None:
        with self.assertRaises(ValueError):
            PlotCache(MemoryStorage(), capacity=0)


class RenderTests(unittest.TestCase):
    def test_render_draws_once_then_hits(self) -> None:
        cache = PlotCache(MemoryStorage())
        calls: list[SizeBucket] = []

        def draw(bucket: SizeBucket) -> np.ndarray:
            calls.append(bucket)
            return _solid(bucket)

        first = cache.render("A", (100, 100), draw)
        second = cache.render("A", (101, 99), draw)

        self.assertFalse(first.cache_hit)
        self.assertTrue(second.cache_hit)
        self.assertEqual(len(calls), 1)
        self.assertEqual(first.bucket, second.bucket)

    def test_render_result_is_fitted_to_requested_device_size(self) -> None:
        cache = PlotCache(MemoryStorage())
        result = cache.render("A", RenderSize(width=100, height=90, pixel_ratio=2.0), _solid)
        self.assertEqual(result.image.shape, (180, 200, 4))
        self.assertEqual(result.bucket.pixel_ratio, 2.0)
        self.assertGreaterEqual(result.bucket.width, 100)

    def test_concurrent_misses_render_at_most_once(self) -> None:
        cache = PlotCache(MemoryStorage())
        calls = 0
        calls_lock = threading.Lock()
        barrier = threading.Barrier(8)
        results = []
        results_lock = threading.Lock()

        def draw(bucket: SizeBucket) -> np.ndarray:
            nonlocal calls
            with calls_lock:
                calls += 1
            time.sleep(0.05)
            return _solid(bucket, 77)

        def worker() -> None:
            barrier.wait()
            result = cache.render("shared", (300, 200), draw)
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        self.assertEqual(calls, 1)
        self.assertEqual(len(results), 8)
        self.assertEqual(sum(1 for r in results if not r.cache_hit), 1)
        for r in results:
            self.assertEqual(int(r.image[0, 0, 0]), 77)

    def test_failed_draw_propagates_and_is_not_cached(self) -> None:
        cache = PlotCache(MemoryStorage())

        def broken(bucket: SizeBucket) -> np.ndarray:
            raise RuntimeError("draw failed")

        with self.assertRaises(RuntimeError):
            cache.render("A", (100, 100), broken)
        result = cache.render("A", (100, 100), _solid)
        self.assertFalse(result.cache_hit)

    def test_draw_must_return_rgba(self) -> None:
        cache = PlotCache(MemoryStorage())
        with self.assertRaises(ValueError):
            cache.render("A", (100, 100), lambda bucket: np.zeros((4, 4), dtype=np.uint8))

    def test_unavailable_storage_degrades_to_uncached_render(self) -> None:
        storage = MemoryStorage()
        cache = PlotCache(storage)
        storage.close()
        calls = []

        def draw(bucket: SizeBucket) -> np.ndarray:
            calls.append(bucket)
            return _solid(bucket)

        with self.assertLogs("plotrecall.cache.plot_cache", level="WARNING"):
            first = cache.render("A", (100, 100), draw)
            second = cache.render("A", (100, 100), draw)
        self.assertFalse(first.cache_hit)
        self.assertFalse(second.cache_hit)
        self.assertEqual(len(calls), 2)
        self.assertEqual(first.image.shape, (100, 100, 4))

    def test_stats_count_hits_and_misses(self) -> None:
        cache = PlotCache(MemoryStorage())
        cache.render("A", (100, 100), _solid)
        cache.render("A", (100, 100), _solid)
        stats = cache.stats()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["entries"], 1)


if __name__ == "__main__":
    unittest.main()
