"""Ingestion clock.

History entries are keyed by ingestion timestamp, so two events handled
within the same millisecond must not share a key.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


def _wall_ms() -> int:
    return int(time.time() * 1000)


class IngestionClock:
    """Epoch-millisecond clock that is strictly increasing per process."""

    def __init__(self, source: Callable[[], int] = _wall_ms) -> None:
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            value = self._source()
            if value <= self._last:
                value = self._last + 1
            self._last = value
            return value
