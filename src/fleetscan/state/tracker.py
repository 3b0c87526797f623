"""Last-known-position cache and location writes."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from fleetscan._constants import MOVEMENT_THRESHOLD_DEG, RECENT_FIX_COUNT
from fleetscan._geo import has_moved
from fleetscan._tasks import BackgroundTasks, KeyedLocks
from fleetscan.ingestion.apply import location_updates
from fleetscan.models.position import PositionFix
from fleetscan.state.retention import HistoryRetention
from fleetscan.store.base import DocumentStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Observation:
    """Outcome of :meth:`LocationTracker.observe`.

    ``current`` is the fix that now represents the vehicle: the incoming
    one when accepted, the previously cached one otherwise.
    """

    accepted: bool
    current: PositionFix


class LocationTracker:
    """Decides which fixes are worth writing and writes them.

    The cache is keyed by reader credential and only advances after the
    store accepted the write, so a failed write is retried by the next fix
    instead of being hidden by the change detection.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        threshold_deg: float = MOVEMENT_THRESHOLD_DEG,
        retention: HistoryRetention | None = None,
        tasks: BackgroundTasks | None = None,
        recent_count: int = RECENT_FIX_COUNT,
    ) -> None:
        self._store = store
        self.threshold_deg = threshold_deg
        self._retention = retention
        self._tasks = tasks
        self._recent_count = recent_count
        self._last: dict[str, PositionFix] = {}
        self._recent: dict[str, deque[PositionFix]] = {}
        self._locks = KeyedLocks()
        self._pruning: set[str] = set()

    async def observe(self, reader_credential: str, vehicle_id: str, fix: PositionFix) -> Observation:
        async with self._locks.hold(reader_credential):
            cached = self._last.get(reader_credential)
            cached_point = (cached.latitude, cached.longitude) if cached is not None else None
            if cached is not None and not has_moved(
                cached_point, (fix.latitude, fix.longitude), self.threshold_deg
            ):
                _logger.debug("Fix for bus %s within %s deg of cache; not written", vehicle_id, self.threshold_deg)
                return Observation(accepted=False, current=cached)

            await self._store.update(location_updates(vehicle_id, fix))
            self._last[reader_credential] = fix
            recent = self._recent.get(reader_credential)
            if recent is None:
                recent = deque(maxlen=self._recent_count)
                self._recent[reader_credential] = recent
            recent.append(fix)

        self._schedule_retention(vehicle_id)
        return Observation(accepted=True, current=fix)

    def _schedule_retention(self, vehicle_id: str) -> None:
        if self._retention is None or self._tasks is None:
            return
        if vehicle_id in self._pruning:
            return
        self._pruning.add(vehicle_id)
        self._tasks.spawn(self._prune(vehicle_id), name=f"prune-history-{vehicle_id}")

    async def _prune(self, vehicle_id: str) -> None:
        assert self._retention is not None  # noqa: S101
        try:
            await self._retention.prune_quietly(vehicle_id)
        finally:
            self._pruning.discard(vehicle_id)

    def last_fix(self, reader_credential: str) -> PositionFix | None:
        return self._last.get(reader_credential)

    def recent(self, reader_credential: str) -> list[PositionFix]:
        """Accepted fixes for the reader, oldest first."""
        return list(self._recent.get(reader_credential, ()))
