"""Vehicle (bus) model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from fleetscan.ingestion.normalize import safe_float
from fleetscan.models._base import StoreRecord
from fleetscan.models.position import Coordinate


class Vehicle(StoreRecord):
    """A bus registered under ``buses/{key}``.

    Driver fields are denormalized copies kept for log convenience; the
    authoritative driver record lives under ``drivers/``.
    """

    reader_credential: str = Field(
        default="",
        validation_alias=AliasChoices("reader_credential", "rfidReaderUsername"),
    )
    """Username the bus's RFID reader presents."""
    plate_number: str = Field(default="", validation_alias=AliasChoices("plate_number", "plateNumber"))
    """License plate, used as the display name in logs."""
    driver_id: str | None = Field(default=None, validation_alias=AliasChoices("driver_id", "driverId"))
    """Key of the associated driver record."""
    driver_name: str = Field(default="", validation_alias=AliasChoices("driver_name", "driverName"))
    driver_phone: str = Field(default="", validation_alias=AliasChoices("driver_phone", "driverPhone"))
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("driver_name", "driver_phone", "plate_number", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return str(value)

    @property
    def position(self) -> Coordinate | None:
        """Last stored position, if any."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(lat=self.latitude, lng=self.longitude)
