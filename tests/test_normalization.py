from __future__ import annotations

import math

from fleetscan.ingestion.clock import IngestionClock
from fleetscan.ingestion.normalize import first_present, parse_coordinate, safe_bool, safe_float, safe_int, safe_str


def test_safe_float_rejects_junk() -> None:
    assert safe_float("12.5") == 12.5
    assert safe_float(3) == 3.0
    assert safe_float(None) is None
    assert safe_float("") is None
    assert safe_float("--") is None
    assert safe_float("abc") is None
    assert safe_float(True) is None
    assert safe_float(math.nan) is None
    assert safe_float("inf") is None


def test_safe_int_truncates() -> None:
    assert safe_int("7.9") == 7
    assert safe_int("x") is None


def test_safe_str_strips_and_drops_empty() -> None:
    assert safe_str("  R1 ") == "R1"
    assert safe_str("   ") is None
    assert safe_str(42) == "42"


def test_safe_bool_variants() -> None:
    assert safe_bool(True) is True
    assert safe_bool("yes") is True
    assert safe_bool("0") is False
    assert safe_bool(1) is True
    assert safe_bool(2) is None
    assert safe_bool("maybe") is None


def test_parse_coordinate_requires_both_axes_in_range() -> None:
    assert parse_coordinate("12.97", 77.59) == {"lat": 12.97, "lng": 77.59}
    assert parse_coordinate(12.97, None) is None
    assert parse_coordinate(91, 0) is None
    assert parse_coordinate(0, -181) is None


def test_first_present_skips_none() -> None:
    assert first_present({"a": None, "b": 0}, "a", "b") == 0
    assert first_present({}, "a") is None


def test_ingestion_clock_is_strictly_increasing() -> None:
    clock = IngestionClock(source=lambda: 1000)
    assert [clock.now_ms() for _ in range(3)] == [1000, 1001, 1002]


def test_ingestion_clock_follows_source_forward() -> None:
    values = iter([1000, 5000])
    clock = IngestionClock(source=lambda: next(values))
    assert clock.now_ms() == 1000
    assert clock.now_ms() == 5000
