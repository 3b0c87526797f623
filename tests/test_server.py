from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from aiohttp.test_utils import TestClient, TestServer

from fleetscan.config import ScanConfig
from fleetscan.exceptions import StoreError
from fleetscan.server import create_app
from fleetscan.service import ScanService
from fleetscan.store import MemoryStore


def _seed() -> dict[str, Any]:
    return {
        "buses": {
            "V1": {"rfidReaderUsername": "R1", "plateNumber": "KA-01"},
            "V2": {"rfidReaderUsername": "R2", "plateNumber": "KA-02"},
        },
        "students": {"S1": {"studentId": "T1", "name": "Ravi", "lastStatus": "check-out"}},
    }


class _BrokenStore(MemoryStore):
    async def query_equal(self, path: str, child: str, value: Any) -> dict[str, Any]:
        raise StoreError("backend down", target=path)


def _service(tmp_path: Path, store: MemoryStore | None = None) -> ScanService:
    config = ScanConfig(snapshot_path=str(tmp_path / "pending.json"), flush_interval=60)
    return ScanService(config, store if store is not None else MemoryStore(_seed()))


@pytest.mark.asyncio
async def test_check_in_then_logs_flushed_on_shutdown(tmp_path: Path) -> None:
    service = _service(tmp_path)
    async with TestClient(TestServer(create_app(service))) as client:
        resp = await client.post(
            "/rfid-scan",
            json={"readerUsername": "R1", "tagId": "T1", "location": {"lat": 12.97, "lng": 77.59}},
        )
        assert resp.status == 200
        body = await resp.json()
        assert body["message"] == "Update processed successfully"
        assert body["busId"] == "V1"
        assert body["status"] == "check-in"

        health = await client.get("/health")
        assert (await health.json())["pending"] == {"V1": 1}

    logs = await service.store.get("busLogs/V1")
    assert [record["status"] for record in logs.values()] == ["check-in"]


@pytest.mark.asyncio
async def test_scan_alias_route(tmp_path: Path) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path)))) as client:
        resp = await client.post("/scan", json={"readerUsername": "R1", "Latitude": 12.97, "Longitude": 77.59})
        assert resp.status == 200
        assert "status" not in await resp.json()


@pytest.mark.asyncio
async def test_conflicting_check_in_returns_400_with_holder(tmp_path: Path) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path)))) as client:
        await client.post("/rfid-scan", json={"readerUsername": "R1", "tagId": "T1"})
        resp = await client.post("/rfid-scan", json={"readerUsername": "R2", "tagId": "T1"})

        assert resp.status == 400
        body = await resp.json()
        assert body["error"] == "conflicting_check_in"
        assert body["message"] == "Student is already checked in on another bus"
        assert body["studentId"] == "T1"
        assert body["lastBusId"] == "V1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "status", "error"),
    [
        ({"tagId": "T1"}, 400, "missing_reader_credential"),
        (["R1"], 400, "invalid_payload"),
        ({"readerUsername": "R404"}, 404, "vehicle_not_found"),
        ({"readerUsername": "R1", "tagId": "NOPE"}, 404, "tag_not_recognized"),
    ],
)
async def test_error_responses(tmp_path: Path, payload: Any, status: int, error: str) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path)))) as client:
        resp = await client.post("/rfid-scan", json=payload)
        assert resp.status == status
        assert (await resp.json())["error"] == error


@pytest.mark.asyncio
async def test_malformed_json_is_400(tmp_path: Path) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path)))) as client:
        resp = await client.post("/rfid-scan", data="{oops", headers={"Content-Type": "application/json"})
        assert resp.status == 400
        assert (await resp.json())["error"] == "invalid_payload"


@pytest.mark.asyncio
async def test_unexpected_failure_is_500_without_details(tmp_path: Path) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path, _BrokenStore())))) as client:
        resp = await client.post("/rfid-scan", json={"readerUsername": "R1"})
        assert resp.status == 500
        body = await resp.json()
        assert body == {"error": "internal_error", "message": "Internal server error"}


@pytest.mark.asyncio
async def test_health_reports_flush_loop(tmp_path: Path) -> None:
    async with TestClient(TestServer(create_app(_service(tmp_path)))) as client:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"ok": True, "flushing": True, "pending": {}}
