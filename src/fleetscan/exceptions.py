"""Custom exception hierarchy for fleetscan."""

from __future__ import annotations


class FleetScanError(Exception):
    """Base exception for all fleetscan errors."""


class FleetScanConfigError(FleetScanError):
    """Invalid or missing configuration."""


class ScanValidationError(FleetScanError):
    """A scan event is missing a required field (HTTP 400)."""

    def __init__(self, message: str, *, code: str = "invalid_payload") -> None:
        self.code = code
        super().__init__(message)


class NotFoundError(FleetScanError):
    """A credential did not resolve to any record (HTTP 404)."""

    code = "not_found"

    def __init__(self, message: str, *, credential: str = "") -> None:
        self.credential = credential
        super().__init__(message)


class VehicleNotFoundError(NotFoundError):
    """No vehicle is registered for the reader credential."""

    code = "vehicle_not_found"


class TagNotFoundError(NotFoundError):
    """The tag credential matches neither a passenger nor a driver."""

    code = "tag_not_recognized"


class ConflictingCheckInError(FleetScanError):
    """Check-in rejected: the passenger is checked in on another vehicle.

    Raised by the check-in state machine before any passenger mutation is
    applied.  ``last_vehicle_id`` is the vehicle currently holding the
    check-in; the HTTP layer reports it as ``lastBusId``.
    """

    code = "conflicting_check_in"

    def __init__(
        self,
        message: str,
        *,
        passenger_id: str,
        last_vehicle_id: str | None,
        scanning_vehicle_id: str = "",
    ) -> None:
        self.passenger_id = passenger_id
        self.last_vehicle_id = last_vehicle_id
        self.scanning_vehicle_id = scanning_vehicle_id
        super().__init__(message)


class RemoteUnavailableError(FleetScanError):
    """A remote collaborator timed out or failed."""

    def __init__(self, message: str, *, target: str = "") -> None:
        self.target = target
        super().__init__(message)


class StoreError(RemoteUnavailableError):
    """The backing document store rejected or timed out a call."""


class PredictorError(RemoteUnavailableError):
    """The remote ETA predictor failed (network, non-200, malformed body)."""

    def __init__(
        self,
        message: str,
        *,
        target: str = "",
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, target=target)


class PersistenceError(FleetScanError):
    """Writing or reading the local durable snapshot failed."""
