"""Travel time estimation with a deterministic fallback."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from fleetscan._constants import (
    AVERAGE_BUS_SPEED_KMH,
    ETA_RANGE_HIGH_FACTOR,
    ETA_RANGE_LOW_FACTOR,
    MIN_ETA_MINUTES,
)
from fleetscan._geo import haversine_km
from fleetscan._predictor import Predictor
from fleetscan.ingestion.normalize import safe_float
from fleetscan.models.eta import EtaEstimate, EtaSource
from fleetscan.models.passenger import CheckInStatus
from fleetscan.models.position import Coordinate, PositionFix

_logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class EtaContext:
    """Auxiliary signals forwarded to the predictor."""

    speed_kmh: float | None = None
    status: CheckInStatus | None = None
    emergency: bool = False
    history: Sequence[PositionFix] = ()


def fallback_estimate(distance_km: float, average_speed_kmh: float = AVERAGE_BUS_SPEED_KMH) -> EtaEstimate:
    """Distance over nominal speed, at least one minute, with a 0.7x-1.5x range."""
    minutes = max(MIN_ETA_MINUTES, _round_half_up(distance_km / average_speed_kmh * 60))
    return EtaEstimate(
        eta_minutes=minutes,
        range_low=max(MIN_ETA_MINUTES, _round_half_up(minutes * ETA_RANGE_LOW_FACTOR)),
        range_high=max(MIN_ETA_MINUTES, _round_half_up(minutes * ETA_RANGE_HIGH_FACTOR)),
        distance_km=distance_km,
        source=EtaSource.FALLBACK,
    )


def parse_prediction(body: dict[str, Any], distance_km: float) -> EtaEstimate:
    """Read a predictor reply; raises :class:`ValueError` when it carries no usable ETA."""
    minutes = safe_float(body.get("eta_minutes"))
    if minutes is None or minutes < 0:
        raise ValueError(f"predictor reply has no usable eta_minutes: {body!r}")

    low: int | None = None
    high: int | None = None
    eta_range = body.get("eta_range")
    if isinstance(eta_range, (list, tuple)) and len(eta_range) == 2:
        lo, hi = safe_float(eta_range[0]), safe_float(eta_range[1])
        if lo is not None and hi is not None and lo <= hi:
            low, high = _round_half_up(lo), _round_half_up(hi)

    return EtaEstimate(
        eta_minutes=_round_half_up(minutes),
        range_low=low,
        range_high=high,
        distance_km=distance_km,
        source=EtaSource.PREDICTOR,
    )


class EtaEstimator:
    """Remote predictor with a local fallback formula.

    :meth:`local_estimate` is synchronous and cannot fail, so the request
    path uses it directly.  :meth:`predict` asks the remote predictor and
    returns ``None`` on a timeout, transport error, non-200 reply or
    malformed body.  :meth:`estimate` combines the two and never raises.
    """

    def __init__(
        self,
        predictor: Predictor | None = None,
        *,
        timeout: float = 3.0,
        average_speed_kmh: float = AVERAGE_BUS_SPEED_KMH,
    ) -> None:
        self.predictor = predictor
        self._timeout = timeout
        self.average_speed_kmh = average_speed_kmh

    def fallback(self, distance_km: float) -> EtaEstimate:
        return fallback_estimate(distance_km, self.average_speed_kmh)

    def local_estimate(self, origin: Coordinate, destination: Coordinate) -> EtaEstimate:
        return self.fallback(haversine_km(origin.lat, origin.lng, destination.lat, destination.lng))

    async def predict(
        self,
        origin: Coordinate,
        destination: Coordinate,
        context: EtaContext | None = None,
    ) -> EtaEstimate | None:
        """Remote estimate, or ``None`` when no predictor is configured or it failed."""
        predictor = self.predictor
        if predictor is None:
            return None

        distance_km = haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
        ctx = context or EtaContext()
        payload = {
            "distance_km": distance_km,
            "speed_kmh": ctx.speed_kmh if ctx.speed_kmh is not None else 0,
            "status": 1 if ctx.status == CheckInStatus.CHECK_IN else 0,
            "origin": origin.to_record(),
            "destination": destination.to_record(),
            "emergency": ctx.emergency,
            "history": [fix.to_record() for fix in ctx.history],
        }
        try:
            body = await asyncio.wait_for(predictor.predict(payload), self._timeout)
            return parse_prediction(body, distance_km)
        except Exception as exc:
            _logger.warning("ETA predictor unavailable (%s); using fallback", str(exc) or type(exc).__name__)
            return None

    async def estimate(
        self,
        origin: Coordinate,
        destination: Coordinate,
        context: EtaContext | None = None,
    ) -> EtaEstimate:
        remote = await self.predict(origin, destination, context)
        if remote is not None:
            return remote
        return self.local_estimate(origin, destination)
