"""Local durable snapshot of the pending delivery buffer."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any

from fleetscan.exceptions import PersistenceError

_logger = logging.getLogger(__name__)


class SnapshotFile:
    """JSON file mapping vehicle id to its list of pending entry records.

    Writes go to a sibling temp file which then replaces the snapshot, so
    a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, list[dict[str, Any]]]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise PersistenceError(f"Cannot read snapshot {self.path}: {exc}") from exc

        try:
            data = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            self._quarantine()
            return {}

        result: dict[str, list[dict[str, Any]]] = {}
        for vehicle_id, records in data.items():
            if isinstance(records, list):
                result[str(vehicle_id)] = [r for r in records if isinstance(r, dict)]
        return result

    def write(self, data: dict[str, list[dict[str, Any]]]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, separators=(",", ":"))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot write snapshot {self.path}: {exc}") from exc

    def _quarantine(self) -> None:
        """Move an unreadable snapshot aside so it is not overwritten."""
        target = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time())}")
        try:
            os.replace(self.path, target)
        except OSError:
            _logger.error("Snapshot %s is corrupt and could not be moved aside", self.path, exc_info=True)
            return
        _logger.error("Snapshot %s is corrupt; moved to %s and starting empty", self.path, target)
