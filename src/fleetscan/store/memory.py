"""In-memory document store."""

from __future__ import annotations

import copy
import itertools
import time
from collections.abc import Mapping
from typing import Any

_PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def _split(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def _generate_push_key(now_ms: int, counter: int) -> str:
    """Lexicographically sortable key: 8 time chars + 12 counter chars."""
    chars: list[str] = []
    value = now_ms
    for _ in range(8):
        chars.append(_PUSH_CHARS[value % 64])
        value //= 64
    time_part = "".join(reversed(chars))
    chars = []
    value = counter
    for _ in range(12):
        chars.append(_PUSH_CHARS[value % 64])
        value //= 64
    return time_part + "".join(reversed(chars))


class MemoryStore:
    """Nested-dict store with Realtime-Database-like semantics.

    * writing ``None`` deletes a path, and parents left empty disappear;
    * :meth:`update` is all-or-nothing (applied to a copy, then swapped in);
    * values are deep-copied on the way in and out.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._root: dict[str, Any] = copy.deepcopy(dict(initial)) if initial else {}
        self._push_counter = itertools.count()

    # ------------------------------------------------------------------
    # Tree helpers
    # ------------------------------------------------------------------

    def _node(self, path: str) -> Any:
        node: Any = self._root
        for part in _split(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    @staticmethod
    def _write(root: dict[str, Any], path: str, value: Any) -> None:
        parts = _split(path)
        if not parts:
            raise ValueError("cannot write to the store root")
        if value is None:
            trail: list[tuple[dict[str, Any], str]] = []
            node: Any = root
            for part in parts[:-1]:
                if not isinstance(node, dict) or part not in node:
                    return
                trail.append((node, part))
                node = node[part]
            if isinstance(node, dict):
                node.pop(parts[-1], None)
            for parent, part in reversed(trail):
                child = parent.get(part)
                if isinstance(child, dict) and not child:
                    del parent[part]
                else:
                    break
            return

        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = copy.deepcopy(value)

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        return copy.deepcopy(self._node(path))

    async def keys(self, path: str) -> list[str]:
        node = self._node(path)
        if not isinstance(node, dict):
            return []
        return list(node.keys())

    async def query_equal(self, path: str, child: str, value: Any) -> dict[str, Any]:
        node = self._node(path)
        if not isinstance(node, dict):
            return {}
        return {
            key: copy.deepcopy(record)
            for key, record in sorted(node.items())
            if isinstance(record, dict) and record.get(child) == value
        }

    async def update(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        staged = copy.deepcopy(self._root)
        for path, value in updates.items():
            self._write(staged, path, value)
        self._root = staged

    async def set(self, path: str, value: Any) -> None:
        self._write(self._root, path, value)

    async def remove(self, path: str) -> None:
        self._write(self._root, path, None)

    async def push(self, path: str, value: Any) -> str:
        key = _generate_push_key(int(time.time() * 1000), next(self._push_counter))
        self._write(self._root, f"{path.strip('/')}/{key}", value)
        return key

    def dump(self) -> dict[str, Any]:
        """Deep copy of the whole tree (for inspection)."""
        return copy.deepcopy(self._root)
