"""Structural store interface."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


def join_path(*parts: object) -> str:
    """Join path segments with ``/``, ignoring empty segments."""
    return "/".join(str(p).strip("/") for p in parts if str(p).strip("/"))


class DocumentStore(Protocol):
    """Keyed document store with indexed lookup and atomic multi-path update.

    Paths are ``/``-separated.  Implementations raise
    :class:`fleetscan.exceptions.StoreError` for remote failures and
    timeouts.
    """

    async def get(self, path: str) -> Any: ...

    async def keys(self, path: str) -> list[str]:
        """Child keys under *path* without their values."""
        ...

    async def query_equal(self, path: str, child: str, value: Any) -> dict[str, Any]:
        """Children of *path* whose *child* field equals *value*, keyed by child key."""
        ...

    async def update(self, updates: Mapping[str, Any]) -> None:
        """Apply all path writes at once or none of them.  ``None`` deletes."""
        ...

    async def set(self, path: str, value: Any) -> None: ...

    async def remove(self, path: str) -> None: ...

    async def push(self, path: str, value: Any) -> str:
        """Append *value* under a generated, chronologically ordered key."""
        ...
