"""Passenger (student) model and check-in states."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from fleetscan.ingestion.normalize import first_present, parse_coordinate, safe_float, safe_int
from fleetscan.models._base import StoreRecord
from fleetscan.models.position import Coordinate


class CheckInStatus(StrEnum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


class Passenger(StoreRecord):
    """A passenger registered under ``students/{key}``.

    ``last_status`` defaults to check-out; any unrecognized stored value is
    read as check-out too.
    """

    tag_credential: str = Field(default="", validation_alias=AliasChoices("tag_credential", "studentId"))
    name: str = ""
    last_status: CheckInStatus = Field(
        default=CheckInStatus.CHECK_OUT,
        validation_alias=AliasChoices("last_status", "lastStatus"),
    )
    last_vehicle_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("last_vehicle_id", "lastBusId"),
    )
    eta: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    home: Coordinate | None = Field(default=None, validation_alias=AliasChoices("home", "homeLocation"))

    @field_validator("last_status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> CheckInStatus:
        try:
            return CheckInStatus(value)
        except ValueError:
            return CheckInStatus.CHECK_OUT

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("eta", mode="before")
    @classmethod
    def _coerce_eta(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("home", mode="before")
    @classmethod
    def _parse_home(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return None
        return parse_coordinate(
            first_present(value, "lat", "latitude"),
            first_present(value, "lng", "lon", "longitude"),
        )

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return str(value)

    @property
    def last_known(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(lat=self.latitude, lng=self.longitude)

    @property
    def destination(self) -> Coordinate | None:
        """Where the passenger is heading: last known position, else home."""
        return self.last_known or self.home
