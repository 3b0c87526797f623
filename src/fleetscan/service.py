"""Component wiring and process lifecycle."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from fleetscan._predictor import HttpPredictor, Predictor
from fleetscan._tasks import BackgroundTasks
from fleetscan.config import ScanConfig
from fleetscan.delivery.buffer import DeliveryBuffer, StoreLogSink
from fleetscan.delivery.snapshot import SnapshotFile
from fleetscan.estimator import EtaEstimator
from fleetscan.handler import ScanHandler
from fleetscan.state.retention import HistoryRetention
from fleetscan.state.tracker import LocationTracker
from fleetscan.store.base import DocumentStore
from fleetscan.store.memory import MemoryStore

_logger = logging.getLogger(__name__)


def build_store(config: ScanConfig) -> DocumentStore:
    """Firebase when credentials are configured, otherwise in-memory."""
    if config.firebase_credentials:
        from fleetscan.store.firebase import FirebaseStore

        return FirebaseStore.from_credentials(
            config.firebase_credentials,
            config.firebase_database_url or "",
            timeout=config.store_timeout,
        )
    _logger.warning("No Firebase credentials configured; using the in-memory store")
    return MemoryStore()


class ScanService:
    """Owns every long-lived component of the scan service.

    Usage::

        async with ScanService(config, store) as service:
            outcome = await service.handler.handle_payload(body)

    Startup restores the pending log snapshot before the flush loop starts;
    shutdown stops the loop, makes a last delivery attempt and waits up to
    ``shutdown_timeout`` for background work (history pruning, ETA
    refreshes) before cancelling what is left.
    """

    def __init__(
        self,
        config: ScanConfig,
        store: DocumentStore,
        *,
        predictor: Predictor | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self._external_session = http_session is not None
        self._http_session = http_session
        self.tasks = BackgroundTasks()
        self.retention = HistoryRetention(
            store,
            limit=config.history_limit,
            retention_seconds=config.retention_window_seconds,
        )
        self.tracker = LocationTracker(
            store,
            threshold_deg=config.movement_threshold_deg,
            retention=self.retention,
            tasks=self.tasks,
            recent_count=config.recent_fix_count,
        )
        self.buffer = DeliveryBuffer(
            StoreLogSink(store, timeout=config.store_timeout),
            SnapshotFile(config.snapshot_path),
            flush_interval=config.flush_interval,
        )
        self.estimator = EtaEstimator(
            predictor,
            timeout=config.predictor_timeout,
            average_speed_kmh=config.average_speed_kmh,
        )
        self.handler = ScanHandler(
            store,
            tracker=self.tracker,
            estimator=self.estimator,
            buffer=self.buffer,
            tasks=self.tasks,
            debug_payloads=config.debug_payloads,
        )

    @classmethod
    def from_config(cls, config: ScanConfig) -> ScanService:
        return cls(config, build_store(config))

    async def start(self) -> None:
        if self.estimator.predictor is None and self.config.predictor_url:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self.estimator.predictor = HttpPredictor(
                self.config.predictor_url,
                self._http_session,
                timeout=self.config.predictor_timeout,
            )
        await self.buffer.load()
        self.buffer.start()
        _logger.info("Scan service started (%d log entries pending)", len(self.buffer))

    async def close(self) -> None:
        await self.buffer.stop()
        if not await self.tasks.join(timeout=self.config.shutdown_timeout):
            _logger.warning(
                "Cancelling %d background tasks still running after %ss", len(self.tasks), self.config.shutdown_timeout
            )
            await self.tasks.cancel_all()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        _logger.info("Scan service stopped (%d log entries pending)", len(self.buffer))

    async def __aenter__(self) -> ScanService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
