"""ETA estimate model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class EtaSource(StrEnum):
    PREDICTOR = "predictor"
    FALLBACK = "fallback"


class EtaEstimate(BaseModel):
    """Travel time estimate in whole minutes.

    ``range_low``/``range_high`` bound the estimate; the fallback formula
    always fills them, the predictor may leave them unset.
    """

    model_config = ConfigDict(frozen=True)

    eta_minutes: int
    range_low: int | None = None
    range_high: int | None = None
    distance_km: float | None = None
    source: EtaSource
