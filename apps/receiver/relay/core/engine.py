"""Position engine: admission, state and fan-out behind one lock."""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from ..errors import AdmissionError, NotYetAvailable
from ..models.positions import Update
from .admission import Clock, admit, now_ms
from .events import BroadcastHub, QueueChannel
from .state import DEFAULT_HISTORY_SIZE, StateStore

logger = logging.getLogger(__name__)


class PositionEngine:
    """Owns the state store and broadcast hub for one tracked subject.

    Construct one per application (or per test); the HTTP layer reaches it
    through ``app.state.engine``.
    """

    def __init__(
        self,
        history_size: int = DEFAULT_HISTORY_SIZE,
        *,
        clock: Clock = now_ms,
        subscriber_queue_size: int = 256,
    ) -> None:
        self._lock = threading.RLock()
        self._clock = clock
        self._subscriber_queue_size = subscriber_queue_size
        self.store = StateStore(history_size, lock=self._lock)
        self.hub = BroadcastHub(self.store, lock=self._lock)

    def submit(
        self,
        raw: Any,
        *,
        forwarded_for: str | None = None,
        peer: str | None = None,
    ) -> Update:
        """Admit ``raw``, record it and push it to every subscriber.

        Rejections propagate to the caller and leave the state untouched.
        """

        try:
            update = admit(raw, forwarded_for=forwarded_for, peer=peer, clock=self._clock)
        except AdmissionError as exc:
            logger.info("Rejected position from %s: %s", forwarded_for or peer, exc.reason)
            raise
        with self._lock:
            self.store.record_accepted(update)
            self.hub.publish(update)
        logger.debug("Accepted position lat=%s lng=%s", update.lat, update.lng)
        return update

    def latest(self) -> Update:
        update = self.store.get_latest()
        if update is None:
            raise NotYetAvailable()
        return update

    def history(self) -> tuple[Update, ...]:
        return self.store.get_history()

    @contextmanager
    def subscribe(self, max_queue_size: Optional[int] = None) -> Iterator[QueueChannel]:
        """Attach a fresh queue channel for the duration of the block."""
        channel = QueueChannel(max_queue_size or self._subscriber_queue_size)
        with self.hub.subscription(channel):
            yield channel
