"""Base model for records read from the backing store.

Every store-backed model inherits from :class:`StoreRecord` which
provides:

* the record ``key`` (the child name under its collection path);
* a ``model_validator(mode="before")`` that drops sentinel values
  (``""``, ``"--"``, NaN) so the field default is used;
* a ``raw`` dict that captures the original record.
"""

from __future__ import annotations

import math
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

_SENTINELS = frozenset({"", "--", "NaN", "nan"})


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _SENTINELS
    return isinstance(value, float) and math.isnan(value)


class StoreRecord(BaseModel):
    """Base for records loaded from a store collection."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    key: str
    """Child key of the record under its collection."""

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original store record."""

    @model_validator(mode="before")
    @classmethod
    def _strip_blanks(cls, values: Any) -> Any:
        """Drop blank store values so field defaults apply; keep the record as ``raw``."""
        if not isinstance(values, dict):
            return values
        cleaned = {k: v for k, v in values.items() if not _is_blank(v)}
        cleaned.setdefault("raw", {k: v for k, v in values.items() if k != "key"})
        return cleaned

    @classmethod
    def from_record(cls, key: str, record: Any) -> Self:
        """Build a model from a store child ``key`` and its value."""
        data = dict(record) if isinstance(record, dict) else {}
        data["key"] = key
        return cls.model_validate(data)
