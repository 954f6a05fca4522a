from __future__ import annotations

import logging
import threading
from typing import Callable

from plotrecall.cache.plot_cache import DEFAULT_CAPACITY, PlotCache
from plotrecall.cache.sizing import SizingPolicy
from plotrecall.cache.storage import CacheStorage, MemoryStorage


LOGGER = logging.getLogger(__name__)


class CacheScopes:
    """Owns one app-wide cache plus a private cache per live session.

    The host constructs this once and passes it to whatever serves plots;
    session caches are torn down with :meth:`end_session`.
    """

    def __init__(
        self,
        app_storage: CacheStorage | None = None,
        *,
        sizing: SizingPolicy | None = None,
        capacity: int = DEFAULT_CAPACITY,
        session_capacity: int | None = None,
        session_storage_factory: Callable[[], CacheStorage] = MemoryStorage,
    ) -> None:
        self._sizing = sizing or SizingPolicy()
        self._session_capacity = session_capacity or capacity
        self._session_storage_factory = session_storage_factory
        self._lock = threading.Lock()
        self._sessions: dict[str, PlotCache] = {}
        self.app = PlotCache(app_storage or MemoryStorage(), sizing=self._sizing, capacity=capacity)

    def for_session(self, session_id: str) -> PlotCache:
        with self._lock:
            cache = self._sessions.get(session_id)
            if cache is None:
                cache = PlotCache(
                    self._session_storage_factory(),
                    sizing=self._sizing,
                    capacity=self._session_capacity,
                )
                self._sessions[session_id] = cache
                LOGGER.debug("created session plot cache session_id=%s", session_id)
            return cache

    def end_session(self, session_id: str) -> bool:
        with self._lock:
            cache = self._sessions.pop(session_id, None)
        if cache is None:
            return False
        cache.invalidate_all()
        cache.storage.close()
        LOGGER.debug("closed session plot cache session_id=%s", session_id)
        return True

    def active_sessions(self) -> list[str]:
        with self._lock:
            return sorted(self._sessions)

    def close(self) -> None:
        for session_id in self.active_sessions():
            self.end_session(session_id)
        self.app.storage.close()
