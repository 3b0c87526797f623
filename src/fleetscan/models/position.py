"""Coordinates and GPS fixes."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from fleetscan._constants import KMH_PER_MS
from fleetscan.ingestion.normalize import safe_float, safe_int


class Coordinate(BaseModel):
    """A WGS84 point.  Accepts ``lat``/``lng`` as well as long-form keys."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    lat: float = Field(validation_alias=AliasChoices("lat", "latitude", "Latitude"))
    lng: float = Field(validation_alias=AliasChoices("lng", "lon", "longitude", "Longitude"))

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)

    def to_record(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


class PositionFix(BaseModel):
    """A single accepted GPS sample for a vehicle.

    Optional telemetry that the reader did not send stays ``None`` and is
    written as an explicit ``null`` so consumers can tell "no data" from
    zero.

    Parameters
    ----------
    timestamp : int
        Ingestion time in epoch milliseconds (also the history key).
    latitude, longitude : float
        Position in degrees.
    altitude : float or None
        Metres above sea level.
    heading : float or None
        Course over ground in degrees.
    speed : float or None
        Ground speed in m/s.
    satellites : int or None
        Satellites used for the fix.
    accuracy : float or None
        Horizontal accuracy as reported by the receiver.
    fix_quality : int or None
        NMEA fix quality indicator.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    timestamp: int
    latitude: float
    longitude: float
    altitude: float | None = None
    heading: float | None = None
    speed: float | None = None
    satellites: int | None = None
    accuracy: float | None = None
    fix_quality: int | None = Field(default=None, validation_alias=AliasChoices("fix_quality", "fixQuality"))

    @field_validator("altitude", "heading", "speed", "accuracy", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("satellites", "fix_quality", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @classmethod
    def from_reading(
        cls,
        *,
        timestamp: int,
        coordinate: Coordinate,
        speed_kmh: float | None = None,
        altitude: float | None = None,
        heading: float | None = None,
        satellites: int | None = None,
        accuracy: float | None = None,
        fix_quality: int | None = None,
    ) -> PositionFix:
        """Build a fix from reader units (speed in km/h)."""
        return cls(
            timestamp=timestamp,
            latitude=coordinate.lat,
            longitude=coordinate.lng,
            altitude=altitude,
            heading=heading,
            speed=speed_kmh / KMH_PER_MS if speed_kmh is not None else None,
            satellites=satellites,
            accuracy=accuracy,
            fix_quality=fix_quality,
        )

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.latitude, lng=self.longitude)

    def to_record(self) -> dict[str, Any]:
        """Store representation; every optional key is present."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "speed": self.speed,
            "heading": self.heading,
            "timestamp": self.timestamp,
            "satellites": self.satellites,
            "accuracy": self.accuracy,
            "fixQuality": self.fix_quality,
        }
