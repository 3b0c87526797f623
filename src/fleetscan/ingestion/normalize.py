"""Normalization helpers.

Centralizes defensive parsing of reader payloads and store records.
"""

from __future__ import annotations

import math
from typing import Any

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def safe_bool(value: Any) -> bool | None:
    """Parse a reader boolean; anything unrecognized is ``None``."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return None


def parse_coordinate(lat: Any, lng: Any) -> dict[str, float] | None:
    """Return ``{"lat": ..., "lng": ...}`` when both axes parse and are in range."""
    lat_f = safe_float(lat)
    lng_f = safe_float(lng)
    if lat_f is None or lng_f is None:
        return None
    if not -90.0 <= lat_f <= 90.0 or not -180.0 <= lng_f <= 180.0:
        return None
    return {"lat": lat_f, "lng": lng_f}


def first_present(mapping: dict[str, Any], *keys: str) -> Any:
    """Return the first value in *mapping* under *keys* that is not ``None``."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None
