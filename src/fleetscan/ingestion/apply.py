"""Update-set builders.

Every mutation the service makes is expressed as a multi-path update
(``{"collection/key/field": value}``) so it can be committed atomically
with :meth:`fleetscan.store.DocumentStore.update`.  Keeping the path
layout in one place keeps the tracker, retention pass and scan handler
free of string formatting.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fleetscan._constants import (
    BUS_LOCATIONS_PATH,
    BUS_LOGS_PATH,
    BUSES_PATH,
    DRIVERS_PATH,
    EMERGENCY_PATH,
    STUDENTS_PATH,
)
from fleetscan.models.driver import Driver
from fleetscan.models.eta import EtaEstimate
from fleetscan.models.passenger import CheckInStatus
from fleetscan.models.position import PositionFix
from fleetscan.store.base import join_path


def history_path(vehicle_id: str) -> str:
    return join_path(BUS_LOCATIONS_PATH, vehicle_id, "history")


def emergency_path(reader_credential: str) -> str:
    return join_path(EMERGENCY_PATH, reader_credential)


def log_path(vehicle_id: str) -> str:
    return join_path(BUS_LOGS_PATH, vehicle_id)


def location_updates(vehicle_id: str, fix: PositionFix) -> dict[str, Any]:
    """Vehicle position, ``current`` slot and a history entry for one fix."""
    record = fix.to_record()
    return {
        join_path(BUSES_PATH, vehicle_id, "latitude"): fix.latitude,
        join_path(BUSES_PATH, vehicle_id, "longitude"): fix.longitude,
        join_path(BUS_LOCATIONS_PATH, vehicle_id, "current"): record,
        join_path(history_path(vehicle_id), fix.timestamp): dict(record),
    }


def check_in_updates(
    passenger_key: str,
    status: CheckInStatus,
    vehicle_id: str,
    estimate: EtaEstimate | None = None,
) -> dict[str, Any]:
    """Status and vehicle assignment, plus the ETA when one was computed."""
    updates: dict[str, Any] = {
        join_path(STUDENTS_PATH, passenger_key, "lastStatus"): status.value,
        join_path(STUDENTS_PATH, passenger_key, "lastBusId"): vehicle_id,
    }
    if estimate is not None:
        updates.update(eta_updates(passenger_key, estimate))
    return updates


def eta_updates(passenger_key: str, estimate: EtaEstimate) -> dict[str, Any]:
    return {join_path(STUDENTS_PATH, passenger_key, "eta"): estimate.eta_minutes}


def driver_updates(vehicle_id: str, driver: Driver, reader_credential: str) -> dict[str, Any]:
    """Associate *driver* with the vehicle and point the driver back at the reader."""
    return {
        join_path(BUSES_PATH, vehicle_id, "driverId"): driver.key,
        join_path(BUSES_PATH, vehicle_id, "driverName"): driver.name,
        join_path(BUSES_PATH, vehicle_id, "driverPhone"): driver.phone,
        join_path(DRIVERS_PATH, driver.key, "currentBusReaderUsername"): reader_credential,
    }


def prune_updates(vehicle_id: str, keys: Iterable[str]) -> dict[str, None]:
    """Batched removal of history entries."""
    base = history_path(vehicle_id)
    return {join_path(base, key): None for key in keys}
