from __future__ import annotations

from contextlib import closing
from pathlib import Path
import sqlite3
import tempfile
import unittest

import numpy as np

from plotrecall.cache import MemoryStorage, PlotCache, SQLiteStorage
from plotrecall.errors import CacheUnavailable
from plotrecall.raster import new_canvas


class MemoryStorageTests(unittest.TestCase):
    def test_keys_are_ordered_by_last_access(self) -> None:
        storage = MemoryStorage()
        for slot in ("a", "b", "c"):
            storage.put(slot, new_canvas(2, 2))
        storage.touch("a")
        self.assertEqual(storage.keys(), ["b", "c", "a"])

    def test_values_are_copied(self) -> None:
        storage = MemoryStorage()
        image = new_canvas(2, 2, color=(1, 2, 3, 255))
        storage.put("a", image)
        image[:] = 0
        got = storage.get("a")
        self.assertEqual(got[0, 0].tolist(), [1, 2, 3, 255])
        self.assertIsNone(storage.get("missing"))

    def test_closed_storage_is_unavailable(self) -> None:
        storage = MemoryStorage()
        storage.close()
        with self.assertRaises(CacheUnavailable):
            storage.get("a")


class SQLiteStorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "cache" / "plots.sqlite"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_images_round_trip_and_persist_across_reopen(self) -> None:
        image = new_canvas(5, 3, color=(10, 20, 30, 255))
        image[1, 2] = (200, 100, 50, 128)
        storage = SQLiteStorage(self.db_path)
        storage.put("slot-1", image)
        storage.close()

        reopened = SQLiteStorage(self.db_path)
        try:
            got = reopened.get("slot-1")
            self.assertIsNotNone(got)
            np.testing.assert_array_equal(got, image)
            self.assertEqual(reopened.summarize()["entries"], 1)
            self.assertGreater(reopened.summarize()["bytes"], 0)
        finally:
            reopened.close()

    def test_recency_order_survives_reopen(self) -> None:
        storage = SQLiteStorage(self.db_path)
        for slot in ("a", "b", "c"):
            storage.put(slot, new_canvas(2, 2))
        storage.touch("a")
        storage.close()

        reopened = SQLiteStorage(self.db_path)
        try:
            self.assertEqual(reopened.keys(), ["b", "c", "a"])
            reopened.delete("b")
            self.assertEqual(reopened.keys(), ["c", "a"])
            reopened.clear()
            self.assertEqual(reopened.keys(), [])
        finally:
            reopened.close()

    def test_plot_cache_recovers_lru_order_from_database(self) -> None:
        storage = SQLiteStorage(self.db_path)
        cache = PlotCache(storage, capacity=3)
        bucket = cache.bucket_for((60, 60))
        for name in ("A", "B", "C"):
            cache.store(name, bucket, new_canvas(*bucket.device_size))
        cache.lookup("A", (60, 60))
        storage.close()

        storage = SQLiteStorage(self.db_path)
        try:
            cache = PlotCache(storage, capacity=3)
            cache.store("D", bucket, new_canvas(*bucket.device_size))
            self.assertIsInstance(cache.lookup("A", (60, 60)), np.ndarray)
            self.assertNotIsInstance(cache.lookup("B", (60, 60)), np.ndarray)
        finally:
            storage.close()

    def test_corrupt_entry_is_rerendered(self) -> None:
        storage = SQLiteStorage(self.db_path)
        try:
            cache = PlotCache(storage)
            calls = []

            def draw(bucket):
                calls.append(bucket)
                return new_canvas(*bucket.device_size, color=(1, 2, 3, 255))

            self.assertFalse(cache.render("A", (100, 100), draw).cache_hit)
            with closing(sqlite3.connect(self.db_path)) as conn:
                conn.execute("UPDATE plot_cache SET png = ?", (sqlite3.Binary(b"garbage"),))
                conn.commit()

            with self.assertLogs("plotrecall.cache.sqlite_storage", level="WARNING"):
                again = cache.render("A", (100, 100), draw)
            self.assertFalse(again.cache_hit)
            self.assertEqual(again.image[0, 0].tolist(), [1, 2, 3, 255])
            self.assertEqual(len(calls), 2)
            self.assertTrue(cache.render("A", (100, 100), draw).cache_hit)
        finally:
            storage.close()

    def test_closed_database_is_unavailable(self) -> None:
        storage = SQLiteStorage(self.db_path)
        storage.close()
        storage.close()
        with self.assertRaises(CacheUnavailable):
            storage.get("a")
        with self.assertRaises(CacheUnavailable):
            storage.put("a", new_canvas(2, 2))

    def test_unopenable_path_raises_cache_unavailable(self) -> None:
        blocker = Path(self._tmp.name) / "file"
        blocker.write_text("not a directory")
        with self.assertRaises(CacheUnavailable):
            SQLiteStorage(blocker / "plots.sqlite")


if __name__ == "__main__":
    unittest.main()
