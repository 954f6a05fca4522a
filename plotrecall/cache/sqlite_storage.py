from __future__ import annotations

import atexit
import logging
from pathlib import Path
import sqlite3
import threading
import time

import numpy as np

from plotrecall.compile.export import decode_png, encode_png
from plotrecall.errors import CacheUnavailable


LOGGER = logging.getLogger(__name__)


class SQLiteStorage:
    """Persistent PNG store; recency is kept in ``access_seq`` so it survives reopen."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(self.path, check_same_thread=False)
            self._init_db()
        except (OSError, sqlite3.Error) as exc:
            raise CacheUnavailable(f"cannot open plot cache database {self.path}: {exc}") from exc
        atexit.register(self.close)

    def _init_db(self) -> None:
        assert self._conn is not None
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS plot_cache (
                slot TEXT PRIMARY KEY,
                png BLOB NOT NULL,
                width INTEGER,
                height INTEGER,
                created_ns INTEGER,
                access_seq INTEGER
            )
            """
        )
        self._conn.commit()

    def get(self, slot: str) -> np.ndarray | None:
        with self._lock:
            row = self._execute("SELECT png FROM plot_cache WHERE slot = ?", (slot,)).fetchone()
        if row is None:
            return None
        try:
            return decode_png(bytes(row[0]))
        except (OSError, ValueError) as exc:
            # Unreadable entries are dropped and reported as a miss.
            LOGGER.warning("dropping unreadable plot cache entry %s in %s: %s", slot, self.path, exc)
            self.delete(slot)
            return None

    def put(self, slot: str, image: np.ndarray) -> None:
        payload = encode_png(image)
        height, width = int(image.shape[0]), int(image.shape[1])
        with self._lock:
            self._execute(
                """
                INSERT OR REPLACE INTO plot_cache (slot, png, width, height, created_ns, access_seq)
                VALUES (?, ?, ?, ?, ?, (SELECT COALESCE(MAX(access_seq), 0) + 1 FROM plot_cache))
                """,
                (slot, sqlite3.Binary(payload), width, height, time.time_ns()),
            )
            self._commit()

    def touch(self, slot: str) -> None:
        with self._lock:
            self._execute(
                "UPDATE plot_cache SET access_seq = (SELECT COALESCE(MAX(access_seq), 0) + 1 FROM plot_cache) WHERE slot = ?",
                (slot,),
            )
            self._commit()

    def delete(self, slot: str) -> None:
        with self._lock:
            self._execute("DELETE FROM plot_cache WHERE slot = ?", (slot,))
            self._commit()

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._execute("SELECT slot FROM plot_cache ORDER BY access_seq ASC").fetchall()
        return [str(row[0]) for row in rows]

    def clear(self) -> None:
        with self._lock:
            self._execute("DELETE FROM plot_cache")
            self._commit()

    def summarize(self) -> dict[str, int]:
        with self._lock:
            count, total = self._execute("SELECT COUNT(*), COALESCE(SUM(LENGTH(png)), 0) FROM plot_cache").fetchone()
        return {"entries": int(count), "bytes": int(total)}

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._conn is None:
            raise CacheUnavailable(f"plot cache database is closed: {self.path}")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            LOGGER.warning("plot cache database error on %s: %s", self.path, exc)
            raise CacheUnavailable(f"plot cache database error: {exc}") from exc

    def _commit(self) -> None:
        assert self._conn is not None
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"plot cache database error: {exc}") from exc
