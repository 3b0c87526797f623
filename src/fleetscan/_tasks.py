"""Supervised background work: fire-and-forget tasks, periodic loops, keyed locks."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from typing import Any

_logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Owns fire-and-forget tasks launched from the request path.

    Tasks are referenced until they finish (so they cannot be garbage
    collected mid-flight), failures are logged rather than lost, and
    shutdown can either wait for them or cancel them.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Background task %s failed", task.get_name(), exc_info=exc)

    async def join(self, timeout: float | None = None) -> bool:
        """Wait until every task spawned so far (and any they spawn) finished.

        Returns ``False`` when *timeout* elapsed first; the tasks that are
        still pending keep running.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            await asyncio.wait(list(self._tasks), timeout=remaining)
        return True

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class PeriodicTask:
    """Run an async callable on a fixed interval until stopped.

    Each instance has its own stop event, so stopping one loop never
    affects another.  A failing iteration is logged and the loop goes on.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[Any]],
        interval: float,
    ) -> None:
        self.name = name
        self._func = func
        self.interval = interval
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            _logger.warning("Periodic task %s is already running", self.name)
            return
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        _logger.debug("Periodic task %s started with %ss interval", self.name, self.interval)

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._stop.set()
        try:
            await task
        finally:
            self._task = None
        _logger.debug("Periodic task %s stopped", self.name)

    async def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                await self._func()
            except Exception:
                _logger.warning("Periodic task %s iteration failed", self.name, exc_info=True)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop.wait(), self.interval)


class KeyedLocks:
    """One :class:`asyncio.Lock` per key, dropped again once idle."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]
