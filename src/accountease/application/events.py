from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """In-process publish/subscribe channel for one kind of message.

    A subscriber that raises is logged and skipped so the remaining
    subscribers still receive the message.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscribers: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, message: T) -> int:
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for callback in subscribers:
            try:
                callback(message)
                delivered += 1
            except Exception:
                log.exception("subscriber_failed channel=%s", self.name)
        return delivered
