"""Credential resolution against the fleet registry."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fleetscan._constants import (
    BUSES_PATH,
    DRIVER_INDEX_FIELD,
    DRIVERS_PATH,
    READER_INDEX_FIELD,
    STUDENT_INDEX_FIELD,
    STUDENTS_PATH,
)
from fleetscan._redact import mask_credential
from fleetscan.exceptions import TagNotFoundError, VehicleNotFoundError
from fleetscan.models.driver import Driver
from fleetscan.models.passenger import Passenger
from fleetscan.models.vehicle import Vehicle
from fleetscan.store.base import DocumentStore

_logger = logging.getLogger(__name__)


def pick_single(matches: dict[str, Any], *, collection: str, credential: str) -> tuple[str, Any] | None:
    """Choose one record out of an indexed lookup result.

    Several records sharing a credential is a registry anomaly: the
    lexicographically smallest key wins and the collision is logged.
    """
    if not matches:
        return None
    keys = sorted(matches)
    if len(keys) > 1:
        _logger.warning(
            "Credential %s matches %d records in %s (%s); using %s",
            mask_credential(credential),
            len(keys),
            collection,
            ", ".join(keys),
            keys[0],
        )
    return keys[0], matches[keys[0]]


class EntityResolver:
    """Maps reader and tag credentials to registry records.  Read-only."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def resolve_vehicle(self, reader_credential: str) -> Vehicle:
        matches = await self._store.query_equal(BUSES_PATH, READER_INDEX_FIELD, reader_credential)
        picked = pick_single(matches, collection=BUSES_PATH, credential=reader_credential)
        if picked is None:
            raise VehicleNotFoundError("Bus not found", credential=reader_credential)
        return Vehicle.from_record(*picked)

    async def find_passenger(self, tag_credential: str) -> Passenger | None:
        matches = await self._store.query_equal(STUDENTS_PATH, STUDENT_INDEX_FIELD, tag_credential)
        picked = pick_single(matches, collection=STUDENTS_PATH, credential=tag_credential)
        return Passenger.from_record(*picked) if picked is not None else None

    async def find_driver(self, tag_credential: str) -> Driver | None:
        matches = await self._store.query_equal(DRIVERS_PATH, DRIVER_INDEX_FIELD, tag_credential)
        picked = pick_single(matches, collection=DRIVERS_PATH, credential=tag_credential)
        return Driver.from_record(*picked) if picked is not None else None

    async def resolve_tag(self, tag_credential: str) -> Passenger | Driver:
        """Resolve a tag to a passenger or a driver; passengers take precedence."""
        passenger, driver = await asyncio.gather(
            self.find_passenger(tag_credential),
            self.find_driver(tag_credential),
        )
        if passenger is not None:
            if driver is not None:
                _logger.warning(
                    "Tag %s is registered to passenger %s and driver %s; treating as passenger",
                    mask_credential(tag_credential),
                    passenger.key,
                    driver.key,
                )
            return passenger
        if driver is not None:
            return driver
        raise TagNotFoundError("Tag not recognized", credential=tag_credential)
