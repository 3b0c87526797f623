"""Per-vehicle location history retention."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from fleetscan._constants import HISTORY_LIMIT, RETENTION_WINDOW_SECONDS
from fleetscan.ingestion.apply import history_path, prune_updates
from fleetscan.state.policy import select_prunable
from fleetscan.store.base import DocumentStore

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class HistoryRetention:
    """Prunes ``busLocations/{vehicle}/history`` by age and count.

    A pass keeps no cursor: it reads the current keys, decides with
    :func:`fleetscan.state.policy.select_prunable` and removes the result
    in one batched update.  A failed pass is simply redone by the next
    accepted fix.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        limit: int = HISTORY_LIMIT,
        retention_seconds: float = RETENTION_WINDOW_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self.limit = limit
        self.retention_ms = int(retention_seconds * 1000)
        self._clock = clock

    async def prune(self, vehicle_id: str) -> list[str]:
        """Run one pass for *vehicle_id*; return the removed keys."""
        keys = await self._store.keys(history_path(vehicle_id))
        doomed = select_prunable(keys, now_ms=self._clock(), retention_ms=self.retention_ms, limit=self.limit)
        if not doomed:
            return []
        await self._store.update(prune_updates(vehicle_id, doomed))
        _logger.debug("Pruned %d of %d history entries for bus %s", len(doomed), len(keys), vehicle_id)
        return doomed

    async def prune_quietly(self, vehicle_id: str) -> None:
        """Background entry point: failures are logged, never raised."""
        try:
            await self.prune(vehicle_id)
        except Exception:
            _logger.warning("History pruning failed for bus %s", vehicle_id, exc_info=True)
