"""Per-vehicle pending entry queues with periodic flushing."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable

from pydantic import ValidationError

from fleetscan._tasks import KeyedLocks, PeriodicTask
from fleetscan.delivery.snapshot import SnapshotFile
from fleetscan.exceptions import PersistenceError
from fleetscan.ingestion.apply import log_path
from fleetscan.models.activity import ActivityLogEntry
from fleetscan.store.base import DocumentStore

_logger = logging.getLogger(__name__)

Deliver = Callable[[ActivityLogEntry], Awaitable[object]]


class StoreLogSink:
    """Delivers an entry by appending it under ``busLogs/{vehicle}``."""

    def __init__(self, store: DocumentStore, *, timeout: float = 5.0) -> None:
        self._store = store
        self._timeout = timeout

    async def __call__(self, entry: ActivityLogEntry) -> str:
        return await asyncio.wait_for(
            self._store.push(log_path(entry.vehicle_id), entry.to_record()),
            self._timeout,
        )


class DeliveryBuffer:
    """At-least-once delivery of :class:`ActivityLogEntry` objects.

    * :meth:`enqueue` appends to the vehicle's FIFO queue and persists the
      whole buffer before returning.
    * :meth:`flush_once` walks every vehicle concurrently; inside a vehicle
      entries go out one at a time, and the first failure stops that
      vehicle until the next cycle.  The head entry is only removed after
      its delivery succeeded, so a failure never skips or reorders it.
    * :meth:`load` restores the snapshot written by a previous process.

    Snapshot failures are logged and leave the in-memory queues untouched.
    """

    def __init__(
        self,
        deliver: Deliver,
        snapshot: SnapshotFile | None = None,
        *,
        flush_interval: float = 1.5,
    ) -> None:
        self._deliver = deliver
        self._snapshot = snapshot
        self._queues: dict[str, deque[ActivityLogEntry]] = {}
        self._locks = KeyedLocks()
        self._snapshot_lock = asyncio.Lock()
        self._flush_lock = asyncio.Lock()
        self._flusher = PeriodicTask("delivery-flush", self.flush_once, flush_interval)

    def __len__(self) -> int:
        return sum(len(q) for q in self._queues.values())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> int:
        """Restore pending entries from the snapshot; return how many."""
        if self._snapshot is None:
            return 0
        try:
            data = await asyncio.to_thread(self._snapshot.read)
        except PersistenceError:
            _logger.error("Pending log snapshot could not be read", exc_info=True)
            return 0

        restored = 0
        for vehicle_id, records in data.items():
            entries: list[ActivityLogEntry] = []
            for record in records:
                try:
                    entries.append(ActivityLogEntry.model_validate(record))
                except ValidationError:
                    _logger.warning("Dropping unreadable snapshot entry for bus %s: %r", vehicle_id, record)
            if not entries:
                continue
            async with self._locks.hold(vehicle_id):
                queue = self._queues.setdefault(vehicle_id, deque())
                queue.extendleft(reversed(entries))
            restored += len(entries)
        if restored:
            _logger.info("Restored %d pending log entries from %s", restored, self._snapshot.path)
        return restored

    def start(self) -> None:
        self._flusher.start()

    async def stop(self) -> None:
        """Stop the flush loop, then make one last delivery attempt."""
        await self._flusher.stop()
        await self.flush_once()

    @property
    def is_running(self) -> bool:
        return self._flusher.is_running

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    async def enqueue(self, entry: ActivityLogEntry) -> None:
        async with self._locks.hold(entry.vehicle_id):
            self._queues.setdefault(entry.vehicle_id, deque()).append(entry)
        await self.persist()

    def pending(self, vehicle_id: str) -> list[ActivityLogEntry]:
        return list(self._queues.get(vehicle_id, ()))

    def depth(self) -> dict[str, int]:
        return {vehicle_id: len(q) for vehicle_id, q in self._queues.items() if q}

    async def flush_once(self) -> int:
        """Run one delivery cycle; return the number of delivered entries."""
        async with self._flush_lock:
            vehicles = [vehicle_id for vehicle_id, q in self._queues.items() if q]
            delivered = 0
            if vehicles:
                results = await asyncio.gather(*(self._flush_vehicle(v) for v in vehicles))
                delivered = sum(results)
            await self.persist()
        if delivered:
            _logger.debug("Delivered %d log entries; %d pending", delivered, len(self))
        return delivered

    async def _flush_vehicle(self, vehicle_id: str) -> int:
        delivered = 0
        while True:
            async with self._locks.hold(vehicle_id):
                queue = self._queues.get(vehicle_id)
                if not queue:
                    self._queues.pop(vehicle_id, None)
                    return delivered
                head = queue[0]

            try:
                await self._deliver(head)
            except Exception as exc:
                _logger.warning(
                    "Delivery failed for bus %s (%d pending): %s",
                    vehicle_id,
                    len(self._queues.get(vehicle_id, ())),
                    exc or type(exc).__name__,
                )
                return delivered

            async with self._locks.hold(vehicle_id):
                queue = self._queues.get(vehicle_id)
                if queue and queue[0] is head:
                    queue.popleft()
            delivered += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot_data(self) -> dict[str, list[dict[str, object]]]:
        return {
            vehicle_id: [entry.model_dump(mode="json") for entry in queue]
            for vehicle_id, queue in self._queues.items()
            if queue
        }

    async def persist(self) -> bool:
        """Overwrite the snapshot with the current buffer; ``False`` on failure."""
        if self._snapshot is None:
            return True
        async with self._snapshot_lock:
            data = self.snapshot_data()
            try:
                await asyncio.to_thread(self._snapshot.write, data)
            except PersistenceError:
                _logger.error("Pending log snapshot write failed; will retry next cycle", exc_info=True)
                return False
        return True
