"""Volatile state: the latest accepted position and a bounded history."""
from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from ..models.positions import Update

DEFAULT_HISTORY_SIZE = 100


class StateStore:
    """Latest value plus a FIFO ring of recent updates, oldest first."""

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_SIZE,
        *,
        lock: threading.RLock | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self._capacity = capacity
        self._lock = lock or threading.RLock()
        self._latest: Optional[Update] = None
        self._history: deque[Update] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def record_accepted(self, update: Update) -> None:
        with self._lock:
            self._latest = update
            # deque(maxlen=...) drops from the left when full.
            self._history.append(update)

    def get_latest(self) -> Optional[Update]:
        with self._lock:
            return self._latest

    def get_history(self) -> tuple[Update, ...]:
        with self._lock:
            return tuple(self._history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)
