"""Incoming scan event model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from fleetscan.ingestion.normalize import first_present, parse_coordinate, safe_bool, safe_float, safe_int, safe_str
from fleetscan.models.position import Coordinate

_FLAT_LAT_KEYS = ("Latitude", "latitude", "lat")
_FLAT_LNG_KEYS = ("Longitude", "longitude", "lng", "lon")


class ScanRequest(BaseModel):
    """One event posted by a bus reader.

    Readers in the field send the coordinate either nested
    (``{"location": {"lat": .., "lng": ..}}``) or flat
    (``{"Latitude": .., "Longitude": ..}``).  Both shapes end up in
    :attr:`location`; the nested shape wins when both are present.  A
    coordinate with a missing or unparseable axis is dropped.

    ``reader_credential`` is optional at the model level so the handler can
    report its absence as a validation error of its own.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    reader_credential: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reader_credential", "readerUsername", "readerCredential"),
    )
    tag_credential: str | None = Field(
        default=None,
        validation_alias=AliasChoices("tag_credential", "tagId", "tagCredential"),
    )
    location: Coordinate | None = None
    speed: float | None = None
    """Ground speed in km/h as sent by the reader."""
    heading: float | None = None
    altitude: float | None = None
    satellites: int | None = None
    accuracy: float | None = None
    fix_quality: int | None = Field(default=None, validation_alias=AliasChoices("fix_quality", "fixQuality"))
    emergency: bool | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _reconcile_location(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = dict(values)
        merged.setdefault("raw", values)

        coordinate: dict[str, float] | None = None
        nested = values.get("location")
        if isinstance(nested, Coordinate):
            coordinate = nested.to_record()
        elif isinstance(nested, dict):
            coordinate = parse_coordinate(
                first_present(nested, "lat", "latitude", "Latitude"),
                first_present(nested, "lng", "lon", "longitude", "Longitude"),
            )
        if coordinate is None:
            coordinate = parse_coordinate(
                first_present(values, *_FLAT_LAT_KEYS),
                first_present(values, *_FLAT_LNG_KEYS),
            )
        merged["location"] = coordinate
        return merged

    @field_validator("reader_credential", "tag_credential", mode="before")
    @classmethod
    def _coerce_credentials(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("speed", "heading", "altitude", "accuracy", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("satellites", "fix_quality", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("emergency", mode="before")
    @classmethod
    def _coerce_emergency(cls, value: Any) -> bool | None:
        return safe_bool(value)

    @property
    def is_emergency(self) -> bool:
        return self.emergency is True
