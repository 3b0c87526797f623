"""Per-event scan orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from fleetscan._constants import MSG_PROCESSED
from fleetscan._redact import mask_credential, redact_for_log
from fleetscan._tasks import BackgroundTasks, KeyedLocks
from fleetscan.delivery.buffer import DeliveryBuffer
from fleetscan.estimator import EtaContext, EtaEstimator
from fleetscan.exceptions import ScanValidationError, StoreError
from fleetscan.ingestion.apply import check_in_updates, driver_updates, emergency_path, eta_updates
from fleetscan.ingestion.clock import IngestionClock
from fleetscan.models.activity import ActivityLogEntry, EmergencyAlert
from fleetscan.models.driver import Driver
from fleetscan.models.eta import EtaEstimate
from fleetscan.models.passenger import CheckInStatus, Passenger
from fleetscan.models.position import Coordinate, PositionFix
from fleetscan.models.scan import ScanRequest
from fleetscan.models.vehicle import Vehicle
from fleetscan.resolver import EntityResolver
from fleetscan.state.policy import next_check_in_status
from fleetscan.state.tracker import LocationTracker
from fleetscan.store.base import DocumentStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """What a successfully handled scan did.

    ``position_accepted`` is ``None`` when the event carried no usable
    coordinate.  ``entry`` is the activity log entry queued for delivery,
    if the event produced one.
    """

    message: str
    vehicle_id: str
    status: CheckInStatus | None = None
    entry: ActivityLogEntry | None = None
    position_accepted: bool | None = None
    emergency_recorded: bool = False
    eta: EtaEstimate | None = None


class ScanHandler:
    """Turns one reader event into committed mutations and a queued log entry.

    Order of operations:

    1. reject events without a reader credential;
    2. resolve the vehicle (404 when unknown);
    3. telemetry: the location fix and the emergency alert commit on their
       own, before the tag is looked at;
    4. tag: under a per-tag lock, resolve it, run the check-in state
       machine (passenger) or re-associate the driver, commit the result in
       one atomic update and queue the log entry.

    A passenger's ETA is the local estimate at first.  When a predictor is
    configured its answer is fetched by a background task and replaces the
    stored ETA, unless a later scan of the same passenger got there first.

    A rejected check-in or an unknown tag therefore leaves the telemetry of
    the same event committed, and never touches passenger or driver state.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        tracker: LocationTracker,
        estimator: EtaEstimator,
        buffer: DeliveryBuffer,
        resolver: EntityResolver | None = None,
        tasks: BackgroundTasks | None = None,
        clock: IngestionClock | None = None,
        debug_payloads: bool = False,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._estimator = estimator
        self._buffer = buffer
        self._resolver = resolver or EntityResolver(store)
        self._clock = clock or IngestionClock()
        self._debug_payloads = debug_payloads
        self._tag_locks = KeyedLocks()
        self.tasks = tasks if tasks is not None else BackgroundTasks()
        self._eta_generation: dict[str, int] = {}

    async def handle_payload(self, payload: Any) -> ScanOutcome:
        """Validate a decoded JSON body and handle it."""
        if not isinstance(payload, dict):
            raise ScanValidationError("Request body must be a JSON object", code="invalid_payload")
        try:
            request = ScanRequest.model_validate(payload)
        except ValidationError as exc:
            raise ScanValidationError(f"Invalid scan payload: {exc}", code="invalid_payload") from exc
        return await self.handle(request)

    async def handle(self, request: ScanRequest) -> ScanOutcome:
        reader = request.reader_credential
        if not reader:
            raise ScanValidationError("Missing readerUsername", code="missing_reader_credential")
        if self._debug_payloads:
            _logger.debug("Scan payload %s", redact_for_log(request.raw))

        vehicle = await self._resolver.resolve_vehicle(reader)
        timestamp = self._clock.now_ms()

        position_accepted: bool | None = None
        if request.location is not None:
            fix = PositionFix.from_reading(
                timestamp=timestamp,
                coordinate=request.location,
                speed_kmh=request.speed,
                altitude=request.altitude,
                heading=request.heading,
                satellites=request.satellites,
                accuracy=request.accuracy,
                fix_quality=request.fix_quality,
            )
            observation = await self._tracker.observe(reader, vehicle.key, fix)
            position_accepted = observation.accepted

        if request.is_emergency:
            alert = EmergencyAlert(reader_credential=reader, location=request.location, timestamp=timestamp)
            await self._store.set(emergency_path(reader), alert.to_record())
            _logger.warning("Emergency raised on bus %s", vehicle.key)

        entry: ActivityLogEntry | None = None
        status: CheckInStatus | None = None
        estimate: EtaEstimate | None = None
        if request.tag_credential:
            async with self._tag_locks.hold(request.tag_credential):
                entity = await self._resolver.resolve_tag(request.tag_credential)
                if isinstance(entity, Passenger):
                    status, estimate, entry = await self._scan_passenger(entity, vehicle, request, timestamp)
                else:
                    entry = await self._scan_driver(entity, vehicle, request, timestamp)
                await self._buffer.enqueue(entry)
        elif request.is_emergency:
            entry = self._entry(vehicle, request, timestamp)
            await self._buffer.enqueue(entry)

        return ScanOutcome(
            message=MSG_PROCESSED,
            vehicle_id=vehicle.key,
            status=status,
            entry=entry,
            position_accepted=position_accepted,
            emergency_recorded=request.is_emergency,
            eta=estimate,
        )

    # ------------------------------------------------------------------
    # Tag scans
    # ------------------------------------------------------------------

    async def _scan_passenger(
        self,
        passenger: Passenger,
        vehicle: Vehicle,
        request: ScanRequest,
        timestamp: int,
    ) -> tuple[CheckInStatus, EtaEstimate | None, ActivityLogEntry]:
        status = next_check_in_status(passenger, vehicle.key)
        route = self._eta_route(passenger, vehicle, request)
        estimate = self._estimator.local_estimate(*route) if route is not None else None

        await self._store.update(check_in_updates(passenger.key, status, vehicle.key, estimate))
        generation = self._eta_generation.get(passenger.key, 0) + 1
        self._eta_generation[passenger.key] = generation
        _logger.info(
            "Passenger %s %s on bus %s",
            passenger.key,
            status.value,
            vehicle.key,
        )

        if route is not None and self._estimator.predictor is not None:
            reader = request.reader_credential or ""
            context = EtaContext(
                speed_kmh=request.speed,
                status=status,
                emergency=request.is_emergency,
                history=self._tracker.recent(reader),
            )
            self.tasks.spawn(
                self._refresh_eta(
                    passenger.key,
                    request.tag_credential or passenger.tag_credential,
                    generation,
                    route,
                    context,
                ),
                name=f"eta-refresh-{passenger.key}",
            )

        entry = self._entry(
            vehicle,
            request,
            timestamp,
            passenger_name=passenger.name,
            status=status,
            eta_minutes=estimate.eta_minutes if estimate is not None else None,
        )
        return status, estimate, entry

    async def _scan_driver(
        self,
        driver: Driver,
        vehicle: Vehicle,
        request: ScanRequest,
        timestamp: int,
    ) -> ActivityLogEntry:
        reader = request.reader_credential or ""
        await self._store.update(driver_updates(vehicle.key, driver, reader))
        _logger.info("Driver %s associated with bus %s (reader %s)", driver.key, vehicle.key, mask_credential(reader))
        return self._entry(
            vehicle,
            request,
            timestamp,
            driver_name=driver.name,
            driver_phone=driver.phone,
        )

    # ------------------------------------------------------------------
    # ETA
    # ------------------------------------------------------------------

    def _eta_route(
        self,
        passenger: Passenger,
        vehicle: Vehicle,
        request: ScanRequest,
    ) -> tuple[Coordinate, Coordinate] | None:
        """Origin and destination for the passenger's ETA, if both are known."""
        origin: Coordinate | None = request.location
        if origin is None:
            last = self._tracker.last_fix(request.reader_credential or "")
            origin = last.coordinate if last is not None else vehicle.position
        destination = passenger.destination
        if origin is None or destination is None:
            return None
        return origin, destination

    async def _refresh_eta(
        self,
        passenger_key: str,
        tag_credential: str,
        generation: int,
        route: tuple[Coordinate, Coordinate],
        context: EtaContext,
    ) -> None:
        """Replace the fallback ETA with the predictor's, unless a newer scan superseded it."""
        remote = await self._estimator.predict(*route, context)
        if remote is None:
            return
        async with self._tag_locks.hold(tag_credential):
            if self._eta_generation.get(passenger_key) != generation:
                _logger.debug("Dropping stale ETA for passenger %s", passenger_key)
                return
            try:
                await self._store.update(eta_updates(passenger_key, remote))
            except StoreError:
                _logger.warning("ETA write-back failed for passenger %s", passenger_key, exc_info=True)
                return
        _logger.debug("Passenger %s ETA refreshed to %d min", passenger_key, remote.eta_minutes)

    @staticmethod
    def _entry(
        vehicle: Vehicle,
        request: ScanRequest,
        timestamp: int,
        **overrides: Any,
    ) -> ActivityLogEntry:
        fields: dict[str, Any] = {
            "vehicle_id": vehicle.key,
            "vehicle_name": vehicle.plate_number,
            "driver_name": vehicle.driver_name,
            "driver_phone": vehicle.driver_phone,
            "tag_credential": request.tag_credential,
            "location": request.location,
            "timestamp": timestamp,
            "emergency": request.is_emergency,
        }
        fields.update(overrides)
        return ActivityLogEntry(**fields)
