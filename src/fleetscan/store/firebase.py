"""Firebase Realtime Database store.

Requires the ``firebase`` extra (``firebase-admin``).  The Admin SDK is
synchronous, so every call runs on a worker thread under its own
timeout; a call that times out is abandoned, not cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin import exceptions as firebase_exceptions

from fleetscan.exceptions import FleetScanConfigError, StoreError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_APP_NAME = "fleetscan"


class FirebaseStore:
    """:class:`fleetscan.store.DocumentStore` backed by the Admin SDK."""

    def __init__(self, app: firebase_admin.App, *, timeout: float = 5.0) -> None:
        self._app = app
        self._timeout = timeout

    @classmethod
    def from_credentials(cls, cred_path: str, database_url: str, *, timeout: float = 5.0) -> FirebaseStore:
        """Initialize (or reuse) the named Admin SDK app."""
        if not database_url:
            raise FleetScanConfigError("firebase_database_url is required for the Firebase store")
        try:
            app = firebase_admin.get_app(_APP_NAME)
        except ValueError:
            try:
                cred = credentials.Certificate(cred_path)
            except (OSError, ValueError) as exc:
                raise FleetScanConfigError(f"Cannot load Firebase credentials from {cred_path}: {exc}") from exc
            app = firebase_admin.initialize_app(cred, {"databaseURL": database_url}, name=_APP_NAME)
        _logger.info("Firebase store connected to %s", database_url)
        return cls(app, timeout=timeout)

    def _ref(self, path: str) -> db.Reference:
        return db.reference(f"/{path.strip('/')}", app=self._app)

    async def _run(self, target: str, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), self._timeout)
        except TimeoutError as exc:
            raise StoreError(f"Store call to {target} timed out after {self._timeout}s", target=target) from exc
        except firebase_exceptions.FirebaseError as exc:
            raise StoreError(f"Store call to {target} failed: {exc}", target=target) from exc

    async def get(self, path: str) -> Any:
        return await self._run(path, lambda: self._ref(path).get())

    async def keys(self, path: str) -> list[str]:
        result = await self._run(path, lambda: self._ref(path).get(shallow=True))
        return list(result.keys()) if isinstance(result, dict) else []

    async def query_equal(self, path: str, child: str, value: Any) -> dict[str, Any]:
        result = await self._run(path, lambda: self._ref(path).order_by_child(child).equal_to(value).get())
        return dict(result) if isinstance(result, Mapping) else {}

    async def update(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        payload = {path.strip("/"): value for path, value in updates.items()}
        await self._run("/", lambda: self._ref("/").update(payload))

    async def set(self, path: str, value: Any) -> None:
        await self._run(path, lambda: self._ref(path).set(value))

    async def remove(self, path: str) -> None:
        await self._run(path, lambda: self._ref(path).delete())

    async def push(self, path: str, value: Any) -> str:
        ref = await self._run(path, lambda: self._ref(path).push(value))
        return str(ref.key)
