"""Activity log entries and emergency alerts."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from fleetscan.models.passenger import CheckInStatus
from fleetscan.models.position import Coordinate


class ActivityLogEntry(BaseModel):
    """Denormalized snapshot of one scan, queued for the log store.

    Entries are immutable once built; the delivery buffer only ever moves
    them between its queues, its snapshot file and the store.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    vehicle_id: str
    vehicle_name: str = ""
    driver_name: str = ""
    driver_phone: str = ""
    tag_credential: str | None = None
    passenger_name: str | None = None
    status: CheckInStatus | None = None
    location: Coordinate | None = None
    timestamp: int
    eta_minutes: int | None = None
    emergency: bool = False

    def to_record(self) -> dict[str, Any]:
        """Store representation, using the log schema's field names."""
        record: dict[str, Any] = {
            "busId": self.vehicle_id,
            "busName": self.vehicle_name,
            "driverName": self.driver_name,
            "driverPhone": self.driver_phone,
            "tagId": self.tag_credential,
            "status": self.status.value if self.status is not None else None,
            "studentName": self.passenger_name,
            "timestamp": self.timestamp,
            "location": self.location.to_record() if self.location is not None else None,
        }
        if self.eta_minutes is not None:
            record["eta_minutes"] = self.eta_minutes
        if self.emergency:
            record["emergency"] = True
        return record


class EmergencyAlert(BaseModel):
    """The single active alert for a reader, stored at ``Emergency/{reader}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    reader_credential: str
    location: Coordinate | None = None
    emergency: bool = True
    timestamp: int

    def to_record(self) -> dict[str, Any]:
        return {
            "readerUsername": self.reader_credential,
            "location": self.location.to_record() if self.location is not None else None,
            "emergency": self.emergency,
            "timestamp": self.timestamp,
        }
