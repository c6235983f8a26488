"""Push-based value streams with replay of the current value.

A ``ValueStream`` holds one current value. Subscribing delivers that value
immediately (when there is one) and every later emission after it, until the
returned ``Subscription`` is unsubscribed. Emissions made from inside a
subscriber are queued, so every subscriber sees values in the same order
and ends on the latest one.
"""

import logging
from collections import deque
from typing import Any, Callable, Dict, Generic, TypeVar

from .nested_map import MISSING


logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by ``subscribe``; calling ``unsubscribe`` twice is a no-op."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.closed = False

    def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.unsubscribe()
        return False


class ValueStream(Generic[T]):
    def __init__(self, initial: Any = MISSING, *, distinct: bool = False):
        self._value = initial
        self._distinct = distinct
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_id = 0
        self._pending: deque = deque()
        self._draining = False

    @property
    def has_value(self) -> bool:
        return self._value is not MISSING

    @property
    def value(self) -> T:
        if self._value is MISSING:
            raise LookupError("Stream has no value yet")
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        subscriber_id = self._next_id
        self._next_id += 1
        self._subscribers[subscriber_id] = callback
        if self.has_value:
            self._deliver(subscriber_id, callback, self._value)
        return Subscription(lambda: self._subscribers.pop(subscriber_id, None))

    def emit(self, value: T) -> None:
        if self._distinct and self.has_value and self._value == value:
            return
        self._value = value
        self._pending.append(value)
        if self._draining:
            # Emitted from inside a subscriber: delivered after the current value
            return
        self._draining = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for subscriber_id, callback in list(self._subscribers.items()):
                    self._deliver(subscriber_id, callback, current)
        finally:
            self._draining = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _deliver(self, subscriber_id: int, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as e:
            logger.error(f"Stream subscriber {subscriber_id} raised: {e}", exc_info=True)
