"""In-memory broadcast hub for SSE streaming."""
from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from ..errors import SubscriberDeliveryFailure
from ..models.positions import Update
from .state import StateStore

logger = logging.getLogger(__name__)

POSITION_EVENT = "position"


@dataclass(slots=True, frozen=True)
class Message:
    """Simple event envelope."""

    event: str
    data: str


class Sendable(Protocol):
    """Anything the hub can push messages to."""

    def send(self, event: str, data: str) -> None: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class Subscriber:
    id: int
    handle: Sendable
    attached_at: float = field(default_factory=time.time)
    on_detach: Optional[Callable[[int], None]] = None


def encode_update(update: Update) -> str:
    return json.dumps(update.payload(), allow_nan=False)


class BroadcastHub:
    """Fan-out of accepted positions to every attached subscriber.

    The hub shares its lock with the state store so that a subscriber
    attaching concurrently with an accepted update sees that update either as
    its initial replay or as a live push, never both and never neither.
    """

    def __init__(self, store: StateStore, *, lock: threading.RLock | None = None) -> None:
        self._store = store
        self._lock = lock or threading.RLock()
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def attach(
        self,
        handle: Sendable,
        on_detach: Optional[Callable[[int], None]] = None,
    ) -> int:
        with self._lock:
            subscriber = Subscriber(next(self._ids), handle, on_detach=on_detach)
            self._subscribers[subscriber.id] = subscriber
            latest = self._store.get_latest()
            if latest is not None:
                self._deliver(subscriber, POSITION_EVENT, encode_update(latest))
        logger.info("Subscriber %s attached (%s live)", subscriber.id, self.subscriber_count)
        return subscriber.id

    def detach(self, subscriber_id: int) -> None:
        with self._lock:
            subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return
        try:
            subscriber.handle.close()
        except Exception:  # noqa: BLE001 - handle may already be defunct
            logger.debug("Closing subscriber %s failed", subscriber_id, exc_info=True)
        if subscriber.on_detach is not None:
            try:
                subscriber.on_detach(subscriber_id)
            except Exception:  # noqa: BLE001
                logger.exception("Detach callback for subscriber %s failed", subscriber_id)
        logger.info("Subscriber %s detached", subscriber_id)

    def publish(self, update: Update) -> None:
        data = encode_update(update)
        with self._lock:
            for subscriber in list(self._subscribers.values()):
                self._deliver(subscriber, POSITION_EVENT, data)

    @contextmanager
    def subscription(
        self,
        handle: Sendable,
        on_detach: Optional[Callable[[int], None]] = None,
    ) -> Iterator[int]:
        subscriber_id = self.attach(handle, on_detach)
        try:
            yield subscriber_id
        finally:
            self.detach(subscriber_id)

    def _deliver(self, subscriber: Subscriber, event: str, data: str) -> None:
        try:
            subscriber.handle.send(event, data)
        except Exception as exc:  # noqa: BLE001 - one bad subscriber must not stop the rest
            logger.warning("Dropping subscriber %s: %s", subscriber.id, exc)
            self.detach(subscriber.id)


_CLOSED = object()


class QueueChannel:
    """Bounded asyncio queue feeding one SSE response.

    ``send`` never waits: a full queue means the consumer has fallen behind,
    and the channel refuses the message so the hub detaches it rather than
    letting it skip positions.
    """

    def __init__(self, max_queue_size: int = 256) -> None:
        self._queue: asyncio.Queue[Message | object] = asyncio.Queue()
        self._max_queue_size = max_queue_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: str, data: str) -> None:
        if self._closed:
            raise SubscriberDeliveryFailure("channel closed")
        if self._queue.qsize() >= self._max_queue_size:
            raise SubscriberDeliveryFailure("subscriber queue full")
        self._queue.put_nowait(Message(event, data))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Message]:
        while True:
            message = await self._queue.get()
            if message is _CLOSED:
                return
            yield message
