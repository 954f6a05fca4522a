from __future__ import annotations

from collections import OrderedDict
import threading
from typing import Protocol

import numpy as np

from plotrecall.errors import CacheUnavailable


class CacheStorage(Protocol):
    """Slot-id to RGBA image store backing a :class:`PlotCache`.

    ``keys()`` lists slots oldest-first by last access so a cache can rebuild
    its recency order when it attaches to an existing store.
    """

    def get(self, slot: str) -> np.ndarray | None:
        ...

    def put(self, slot: str, image: np.ndarray) -> None:
        ...

    def touch(self, slot: str) -> None:
        ...

    def delete(self, slot: str) -> None:
        ...

    def keys(self) -> list[str]:
        ...

    def clear(self) -> None:
        ...

    def close(self) -> None:
        ...


class MemoryStorage:
    """In-process storage; share one instance for app scope, one per session otherwise."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, np.ndarray] = OrderedDict()
        self._closed = False

    def get(self, slot: str) -> np.ndarray | None:
        with self._lock:
            self._check_open()
            image = self._entries.get(slot)
            return None if image is None else image.copy()

    def put(self, slot: str, image: np.ndarray) -> None:
        with self._lock:
            self._check_open()
            self._entries[slot] = np.array(image, dtype=np.uint8, copy=True)
            self._entries.move_to_end(slot)

    def touch(self, slot: str) -> None:
        with self._lock:
            self._check_open()
            if slot in self._entries:
                self._entries.move_to_end(slot)

    def delete(self, slot: str) -> None:
        with self._lock:
            self._check_open()
            self._entries.pop(slot, None)

    def keys(self) -> list[str]:
        with self._lock:
            self._check_open()
            return list(self._entries.keys())

    def clear(self) -> None:
        with self._lock:
            self._check_open()
            self._entries.clear()

    def close(self) -> None:
        with self._lock:
            self._entries.clear()
            self._closed = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _check_open(self) -> None:
        if self._closed:
            raise CacheUnavailable("memory storage is closed")
