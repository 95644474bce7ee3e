"""In-memory subscription registry guarded by a readers-writer lock."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from .models import Subscription


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Waiting writers block new readers so mutations are not starved by a
    steady stream of snapshots.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SubscriptionRegistry:
    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._subscriptions: dict[str, Subscription] = {}

    def upsert(self, key: str, subscription: Subscription) -> None:
        with self._lock.write():
            self._subscriptions[key] = subscription

    def remove(self, key: str) -> None:
        with self._lock.write():
            self._subscriptions.pop(key, None)

    def get(self, key: str) -> Subscription | None:
        with self._lock.read():
            return self._subscriptions.get(key)

    def snapshot(self) -> list[Subscription]:
        """Point-in-time copy of every subscription; later mutations are not seen."""
        with self._lock.read():
            return list(self._subscriptions.values())

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._subscriptions)
