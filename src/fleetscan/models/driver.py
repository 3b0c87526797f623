"""Driver model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from fleetscan.models._base import StoreRecord


class Driver(StoreRecord):
    """A driver registered under ``drivers/{key}``."""

    tag_credential: str = Field(default="", validation_alias=AliasChoices("tag_credential", "driverId"))
    name: str = ""
    phone: str = ""
    current_reader_credential: str | None = Field(
        default=None,
        validation_alias=AliasChoices("current_reader_credential", "currentBusReaderUsername"),
    )
    """Reader of the bus the driver last scanned on."""

    @field_validator("name", "phone", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return str(value)
