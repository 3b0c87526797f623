from __future__ import annotations

import asyncio
from typing import Any

import pytest

from fleetscan._tasks import BackgroundTasks
from fleetscan.delivery import DeliveryBuffer, StoreLogSink
from fleetscan.estimator import EtaEstimator
from fleetscan.exceptions import (
    ConflictingCheckInError,
    ScanValidationError,
    TagNotFoundError,
    VehicleNotFoundError,
)
from fleetscan.handler import ScanHandler
from fleetscan.ingestion.clock import IngestionClock
from fleetscan.models import CheckInStatus, EtaSource
from fleetscan.state.tracker import LocationTracker
from fleetscan.store import MemoryStore


def _seed() -> dict[str, Any]:
    return {
        "buses": {
            "V1": {"rfidReaderUsername": "R1", "plateNumber": "KA-01", "driverName": "Asha", "driverPhone": "555"},
            "V2": {"rfidReaderUsername": "R2", "plateNumber": "KA-02"},
        },
        "students": {
            "S1": {
                "studentId": "T1",
                "name": "Ravi",
                "lastStatus": "check-out",
                "homeLocation": {"lat": 12.98, "lng": 77.60},
            },
        },
        "drivers": {"D1": {"driverId": "T9", "name": "Kumar", "phone": "999"}},
    }


class _Harness:
    def __init__(self, predictor: Any = None) -> None:
        self.store = MemoryStore(_seed())
        self.tracker = LocationTracker(self.store)
        self.buffer = DeliveryBuffer(StoreLogSink(self.store))
        self.tasks = BackgroundTasks()
        self.handler = ScanHandler(
            self.store,
            tracker=self.tracker,
            estimator=EtaEstimator(predictor),
            buffer=self.buffer,
            tasks=self.tasks,
            clock=IngestionClock(source=lambda: 1_700_000_000_000),
        )

    async def scan(self, **payload: Any) -> Any:
        return await self.handler.handle_payload(payload)


class _FixedPredictor:
    async def predict(self, payload: Any) -> dict[str, Any]:
        return {"eta_minutes": 11}


class _GatedPredictor:
    """Answers in order; the first reply is held until ``gate`` is set."""

    def __init__(self, *replies: int) -> None:
        self.replies = list(replies)
        self.gate = asyncio.Event()
        self.calls = 0

    async def predict(self, payload: Any) -> dict[str, Any]:
        self.calls += 1
        reply = self.replies.pop(0)
        if self.calls == 1:
            await self.gate.wait()
        return {"eta_minutes": reply}


class _BrokenPredictor:
    async def predict(self, payload: Any) -> dict[str, Any]:
        raise ConnectionError("predictor down")


@pytest.mark.asyncio
async def test_check_in_on_scanning_bus() -> None:
    h = _Harness()

    outcome = await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59}, speed=36)

    assert outcome.message == "Update processed successfully"
    assert outcome.vehicle_id == "V1"
    assert outcome.status == CheckInStatus.CHECK_IN
    assert outcome.position_accepted is True
    student = await h.store.get("students/S1")
    assert student["lastStatus"] == "check-in"
    assert student["lastBusId"] == "V1"
    assert outcome.eta is not None
    assert outcome.eta.source == EtaSource.FALLBACK
    assert outcome.eta.eta_minutes >= 1
    assert student["eta"] == outcome.eta.eta_minutes
    assert await h.store.get("buses/V1/latitude") == 12.97
    assert (await h.store.get("busLocations/V1/current"))["speed"] == pytest.approx(10.0)

    [entry] = h.buffer.pending("V1")
    assert entry.status == CheckInStatus.CHECK_IN
    assert entry.passenger_name == "Ravi"
    assert entry.vehicle_name == "KA-01"
    assert entry.driver_name == "Asha"
    assert entry.tag_credential == "T1"
    assert entry.eta_minutes == outcome.eta.eta_minutes


@pytest.mark.asyncio
async def test_second_scan_on_same_bus_checks_out() -> None:
    h = _Harness()
    await h.scan(readerUsername="R1", tagId="T1")

    outcome = await h.scan(readerUsername="R1", tagId="T1")

    assert outcome.status == CheckInStatus.CHECK_OUT
    assert await h.store.get("students/S1/lastStatus") == "check-out"
    assert [e.status for e in h.buffer.pending("V1")] == [CheckInStatus.CHECK_IN, CheckInStatus.CHECK_OUT]


@pytest.mark.asyncio
async def test_scan_on_other_bus_is_rejected_but_telemetry_commits() -> None:
    h = _Harness()
    await h.scan(readerUsername="R1", tagId="T1")

    with pytest.raises(ConflictingCheckInError) as excinfo:
        await h.scan(readerUsername="R2", tagId="T1", location={"lat": 13.0, "lng": 77.0})

    assert excinfo.value.last_vehicle_id == "V1"
    assert excinfo.value.passenger_id == "T1"
    student = await h.store.get("students/S1")
    assert student["lastStatus"] == "check-in"
    assert student["lastBusId"] == "V1"
    assert await h.store.get("buses/V2/latitude") == 13.0
    assert h.buffer.pending("V2") == []


@pytest.mark.asyncio
async def test_coordinate_jitter_is_not_written() -> None:
    h = _Harness()
    await h.scan(readerUsername="R1", Latitude=12.97, Longitude=77.59)

    moved = await h.scan(readerUsername="R1", Latitude=12.9701, Longitude=77.59)
    jitter = await h.scan(readerUsername="R1", Latitude=12.97011, Longitude=77.59)

    assert moved.position_accepted is True
    assert jitter.position_accepted is False
    assert len(await h.store.keys("busLocations/V1/history")) == 2
    assert await h.store.get("buses/V1/latitude") == 12.9701


@pytest.mark.asyncio
async def test_event_without_location_or_tag_only_resolves_vehicle() -> None:
    h = _Harness()
    outcome = await h.scan(readerUsername="R1")
    assert outcome.position_accepted is None
    assert outcome.entry is None
    assert await h.store.get("busLocations") is None


@pytest.mark.asyncio
async def test_driver_scan_reassociates_driver() -> None:
    h = _Harness()

    outcome = await h.scan(readerUsername="R1", tagId="T9")

    assert outcome.status is None
    bus = await h.store.get("buses/V1")
    assert bus["driverId"] == "D1"
    assert bus["driverName"] == "Kumar"
    assert bus["driverPhone"] == "999"
    assert await h.store.get("drivers/D1/currentBusReaderUsername") == "R1"
    assert outcome.entry is not None
    assert outcome.entry.driver_name == "Kumar"
    assert outcome.entry.status is None


@pytest.mark.asyncio
async def test_unknown_tag_is_rejected_after_location_commit() -> None:
    h = _Harness()
    with pytest.raises(TagNotFoundError):
        await h.scan(readerUsername="R1", tagId="NOPE", location={"lat": 12.97, "lng": 77.59})
    assert await h.store.get("buses/V1/latitude") == 12.97
    assert len(h.buffer) == 0


@pytest.mark.asyncio
async def test_unknown_reader_changes_nothing() -> None:
    h = _Harness()
    before = h.store.dump()
    with pytest.raises(VehicleNotFoundError):
        await h.scan(readerUsername="R404", tagId="T1", location={"lat": 1.0, "lng": 1.0})
    assert h.store.dump() == before


@pytest.mark.asyncio
async def test_missing_reader_is_a_validation_error() -> None:
    h = _Harness()
    with pytest.raises(ScanValidationError) as excinfo:
        await h.scan(tagId="T1")
    assert excinfo.value.code == "missing_reader_credential"


@pytest.mark.asyncio
async def test_non_object_body_is_invalid() -> None:
    h = _Harness()
    with pytest.raises(ScanValidationError) as excinfo:
        await h.handler.handle_payload(["R1"])
    assert excinfo.value.code == "invalid_payload"


@pytest.mark.asyncio
async def test_emergency_records_alert_and_log_entry() -> None:
    h = _Harness()

    outcome = await h.scan(readerUsername="R1", emergency=True, location={"lat": 12.97, "lng": 77.59})

    assert outcome.emergency_recorded is True
    alert = await h.store.get("Emergency/R1")
    assert alert["emergency"] is True
    assert alert["readerUsername"] == "R1"
    assert alert["location"] == {"lat": 12.97, "lng": 77.59}
    [entry] = h.buffer.pending("V1")
    assert entry.emergency is True
    assert entry.tag_credential is None


@pytest.mark.asyncio
async def test_predictor_eta_is_stored_on_passenger() -> None:
    h = _Harness(predictor=_FixedPredictor())
    outcome = await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59})
    assert outcome.eta is not None and outcome.eta.source == EtaSource.FALLBACK

    await h.tasks.join()
    assert await h.store.get("students/S1/eta") == 11


@pytest.mark.asyncio
async def test_slow_predictor_does_not_delay_scan() -> None:
    predictor = _GatedPredictor(11)
    h = _Harness(predictor=predictor)

    outcome = await asyncio.wait_for(
        h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59}),
        1.0,
    )

    assert outcome.status == CheckInStatus.CHECK_IN
    assert outcome.eta is not None and outcome.eta.source == EtaSource.FALLBACK
    assert await h.store.get("students/S1/eta") == outcome.eta.eta_minutes
    assert len(h.tasks) == 1

    predictor.gate.set()
    await h.tasks.join()
    assert await h.store.get("students/S1/eta") == 11


@pytest.mark.asyncio
async def test_late_predictor_reply_does_not_overwrite_newer_eta() -> None:
    predictor = _GatedPredictor(20, 30)
    h = _Harness(predictor=predictor)

    await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59})
    await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.975, "lng": 77.595})
    for _ in range(100):
        if await h.store.get("students/S1/eta") == 30:
            break
        await asyncio.sleep(0.01)
    assert await h.store.get("students/S1/eta") == 30

    predictor.gate.set()
    await h.tasks.join()
    assert await h.store.get("students/S1/eta") == 30


@pytest.mark.asyncio
async def test_failed_predictor_keeps_fallback_eta() -> None:
    h = _Harness(predictor=_BrokenPredictor())

    outcome = await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59})
    await h.tasks.join()

    assert outcome.eta is not None
    assert await h.store.get("students/S1/eta") == outcome.eta.eta_minutes


@pytest.mark.asyncio
async def test_no_eta_without_destination() -> None:
    h = _Harness()
    await h.store.remove("students/S1/homeLocation")
    outcome = await h.scan(readerUsername="R1", tagId="T1", location={"lat": 12.97, "lng": 77.59})
    assert outcome.eta is None
    assert await h.store.get("students/S1/eta") is None


@pytest.mark.asyncio
async def test_concurrent_scans_of_one_tag_are_serialized() -> None:
    h = _Harness()

    outcomes = await asyncio.gather(
        h.scan(readerUsername="R1", tagId="T1"),
        h.scan(readerUsername="R1", tagId="T1"),
    )

    assert sorted(o.status.value for o in outcomes) == ["check-in", "check-out"]
    assert await h.store.get("students/S1/lastStatus") == "check-out"


@pytest.mark.asyncio
async def test_log_entries_reach_the_store_on_flush() -> None:
    h = _Harness()
    await h.scan(readerUsername="R1", tagId="T1")
    await h.scan(readerUsername="R1", tagId="T1")

    assert await h.buffer.flush_once() == 2
    logs = list((await h.store.get("busLogs/V1")).values())
    assert [record["status"] for record in logs] == ["check-in", "check-out"]
    assert logs[0]["studentName"] == "Ravi"
