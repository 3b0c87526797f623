"""Deterministic state policies.

This module contains no I/O.  The tracker, retention pass and scan
handler feed it plain values and apply whatever it decides.
"""

from __future__ import annotations

from collections.abc import Iterable

from fleetscan._constants import MSG_CONFLICT
from fleetscan.exceptions import ConflictingCheckInError
from fleetscan.models.passenger import CheckInStatus, Passenger


def next_check_in_status(passenger: Passenger, scanning_vehicle_id: str) -> CheckInStatus:
    """Toggle a passenger's status for a scan on *scanning_vehicle_id*.

    - not checked in: check in on the scanning vehicle;
    - checked in on the scanning vehicle: check out;
    - checked in on another vehicle: rejected.

    Only a scan on the same vehicle can clear a check-in.
    """
    if passenger.last_status != CheckInStatus.CHECK_IN:
        return CheckInStatus.CHECK_IN
    if passenger.last_vehicle_id == scanning_vehicle_id:
        return CheckInStatus.CHECK_OUT
    raise ConflictingCheckInError(
        MSG_CONFLICT,
        passenger_id=passenger.tag_credential,
        last_vehicle_id=passenger.last_vehicle_id,
        scanning_vehicle_id=scanning_vehicle_id,
    )


def select_prunable(
    timestamps: Iterable[str | int],
    *,
    now_ms: int,
    retention_ms: int,
    limit: int,
) -> list[str]:
    """Return the history keys to delete, oldest first.

    Every key older than ``now_ms - retention_ms`` is prunable.  When more
    than ``limit`` keys exist, the oldest ones beyond the limit are prunable
    too, however recent they are.  Keys that are not numeric are left alone.
    """
    numeric: list[tuple[int, str]] = []
    for ts in timestamps:
        try:
            numeric.append((int(ts), str(ts)))
        except (TypeError, ValueError):
            continue
    numeric.sort()

    cutoff = now_ms - retention_ms
    over_limit = max(0, len(numeric) - limit)
    return [key for index, (value, key) in enumerate(numeric) if value < cutoff or index < over_limit]
