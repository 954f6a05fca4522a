from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

import numpy as np


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[T], None]


class ReactiveValue(Generic[T]):
    """Observable holder with explicit ``get``/``set``.

    Subscribers run synchronously on the thread calling :meth:`set`, after the
    new value is visible, and only when the value actually changed.
    """

    def __init__(self, initial: T) -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._version = 0
        self._subscribers: dict[int, Subscriber[T]] = {}
        self._next_token = 1

    @property
    def version(self) -> int:
        return self._version

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> bool:
        with self._lock:
            if _same_value(self._value, value):
                return False
            self._value = value
            self._version += 1
            subscribers = list(self._subscribers.values())
        for callback in subscribers:
            try:
                callback(value)
            except Exception:  # noqa: BLE001
                LOGGER.exception("reactive value subscriber failed")
        return True

    def update(self, fn: Callable[[T], T]) -> bool:
        return self.set(fn(self.get()))

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class Observer:
    def __init__(self, source: ReactiveValue, handler: Callable[[object], None], *, once: bool) -> None:
        self._handler = handler
        self._once = once
        self._unsubscribe: Callable[[], None] | None = source.subscribe(self._on_change)

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def destroy(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, value: object) -> None:
        if self._unsubscribe is None:
            return
        if self._once:
            self.destroy()
        self._handler(value)


def observe_event(
    source: ReactiveValue[T],
    handler: Callable[[T], None],
    *,
    ignore_init: bool = True,
    once: bool = False,
) -> Observer:
    """Run ``handler`` whenever ``source`` changes.

    With ``ignore_init=False`` the handler also runs immediately with the
    current value, unless that value is ``None``.
    """
    observer = Observer(source, handler, once=once)
    if not ignore_init:
        current = source.get()
        if current is not None:
            observer._on_change(current)
    return observer


def _same_value(a: object, b: object) -> bool:
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if not (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)):
            return False
        return a.shape == b.shape and a.dtype == b.dtype and bool(np.array_equal(a, b))
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False
