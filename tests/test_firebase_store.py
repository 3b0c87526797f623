from __future__ import annotations

import time
from typing import Any

import pytest

pytest.importorskip("firebase_admin")

from firebase_admin import exceptions as firebase_exceptions  # noqa: E402

from fleetscan.exceptions import FleetScanConfigError, StoreError  # noqa: E402
from fleetscan.store import firebase as firebase_store  # noqa: E402
from fleetscan.store.firebase import FirebaseStore  # noqa: E402


class _FakeRef:
    """Records calls made against one database path."""

    def __init__(self, db: _FakeDb, path: str) -> None:
        self._db = db
        self.path = path
        self.key = "pushed-key"
        self._child: str | None = None
        self._value: Any = None

    def get(self, shallow: bool = False) -> Any:
        self._db.calls.append(("get", self.path, shallow, self._child, self._value))
        if self._db.delay:
            time.sleep(self._db.delay)
        if self._db.error is not None:
            raise self._db.error
        return self._db.reply

    def order_by_child(self, child: str) -> _FakeRef:
        self._child = child
        return self

    def equal_to(self, value: Any) -> _FakeRef:
        self._value = value
        return self

    def update(self, payload: dict[str, Any]) -> None:
        self._db.calls.append(("update", self.path, payload))

    def set(self, value: Any) -> None:
        self._db.calls.append(("set", self.path, value))

    def delete(self) -> None:
        self._db.calls.append(("delete", self.path))

    def push(self, value: Any) -> _FakeRef:
        self._db.calls.append(("push", self.path, value))
        return self


class _FakeDb:
    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.reply: Any = None
        self.delay = 0.0
        self.error: Exception | None = None

    def reference(self, path: str, app: Any = None) -> _FakeRef:
        return _FakeRef(self, path)


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> _FakeDb:
    fake = _FakeDb()
    monkeypatch.setattr(firebase_store.db, "reference", fake.reference)
    return fake


@pytest.mark.asyncio
async def test_query_equal_orders_by_child(fake_db: _FakeDb) -> None:
    fake_db.reply = {"V1": {"rfidReaderUsername": "R1"}}
    store = FirebaseStore(object())  # type: ignore[arg-type]

    result = await store.query_equal("buses", "rfidReaderUsername", "R1")

    assert result == {"V1": {"rfidReaderUsername": "R1"}}
    assert fake_db.calls == [("get", "/buses", False, "rfidReaderUsername", "R1")]


@pytest.mark.asyncio
async def test_keys_uses_shallow_read(fake_db: _FakeDb) -> None:
    fake_db.reply = {"1000": True, "2000": True}
    store = FirebaseStore(object())  # type: ignore[arg-type]

    assert await store.keys("busLocations/V1/history") == ["1000", "2000"]
    assert fake_db.calls[0][2] is True


@pytest.mark.asyncio
async def test_update_is_one_root_write(fake_db: _FakeDb) -> None:
    store = FirebaseStore(object())  # type: ignore[arg-type]

    await store.update({"/students/S1/lastStatus": "check-in", "students/S1/lastBusId": "V1"})
    key = await store.push("busLogs/V1", {"status": "check-in"})

    assert fake_db.calls[0] == ("update", "/", {"students/S1/lastStatus": "check-in", "students/S1/lastBusId": "V1"})
    assert fake_db.calls[1] == ("push", "/busLogs/V1", {"status": "check-in"})
    assert key == "pushed-key"


@pytest.mark.asyncio
async def test_firebase_errors_become_store_errors(fake_db: _FakeDb) -> None:
    fake_db.error = firebase_exceptions.FirebaseError("UNAVAILABLE", "backend down")
    store = FirebaseStore(object())  # type: ignore[arg-type]

    with pytest.raises(StoreError, match="backend down") as excinfo:
        await store.get("buses")
    assert excinfo.value.target == "buses"


@pytest.mark.asyncio
async def test_slow_calls_time_out(fake_db: _FakeDb) -> None:
    fake_db.delay = 0.5
    store = FirebaseStore(object(), timeout=0.05)  # type: ignore[arg-type]

    with pytest.raises(StoreError, match="timed out"):
        await store.get("buses")


def test_from_credentials_requires_database_url() -> None:
    with pytest.raises(FleetScanConfigError):
        FirebaseStore.from_credentials("service-account.json", "")
