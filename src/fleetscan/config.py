"""Service configuration for fleetscan."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetscan._constants import (
    AVERAGE_BUS_SPEED_KMH,
    HISTORY_LIMIT,
    MOVEMENT_THRESHOLD_DEG,
    RECENT_FIX_COUNT,
    RETENTION_WINDOW_SECONDS,
)
from fleetscan.exceptions import FleetScanConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, kind: type) -> Any:
    try:
        return kind(value)
    except ValueError as exc:
        raise FleetScanConfigError(f"{env_key} must be a {kind.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ScanConfig:
    """Service configuration.

    Parameters
    ----------
    host : str
        Interface the ingestion endpoint binds to.
    port : int
        Port the ingestion endpoint listens on.
    movement_threshold_deg : float
        Per-axis angular displacement a fix must exceed (against the last
        accepted fix of the same reader) to be written.  About 5 m.
    history_limit : int
        Maximum number of history entries kept per bus; the oldest beyond it
        are pruned whatever their age.
    retention_window_seconds : float
        Age after which history entries become prunable.
    recent_fix_count : int
        Accepted fixes kept in memory per reader as predictor context.
    flush_interval : float
        Seconds between delivery buffer flush cycles.
    store_timeout : float
        Per-call timeout for backing store operations.
    predictor_url : str or None
        Remote ETA predictor endpoint.  ``None`` disables the remote path
        and every estimate uses the local fallback formula.
    predictor_timeout : float
        Per-call timeout for the remote predictor.
    shutdown_timeout : float
        Seconds shutdown waits for background tasks before cancelling them.
    average_speed_kmh : float
        Nominal bus speed used by the fallback ETA formula.
    snapshot_path : str
        Local file holding the pending delivery buffer.
    firebase_credentials : str or None
        Service account JSON for the Firebase store.  When unset the
        service runs against the in-memory store.
    firebase_database_url : str or None
        Realtime Database URL for the Firebase store.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    movement_threshold_deg: float = MOVEMENT_THRESHOLD_DEG
    history_limit: int = HISTORY_LIMIT
    retention_window_seconds: float = RETENTION_WINDOW_SECONDS
    recent_fix_count: int = RECENT_FIX_COUNT
    flush_interval: float = 1.5
    store_timeout: float = 5.0
    predictor_url: str | None = None
    predictor_timeout: float = 3.0
    shutdown_timeout: float = 10.0
    average_speed_kmh: float = AVERAGE_BUS_SPEED_KMH
    snapshot_path: str = "pending_logs.json"
    firebase_credentials: str | None = None
    firebase_database_url: str | None = None
    debug_payloads: bool = False

    def __post_init__(self) -> None:
        if self.movement_threshold_deg < 0:
            raise FleetScanConfigError("movement_threshold_deg must be >= 0")
        if self.history_limit < 0:
            raise FleetScanConfigError("history_limit must be >= 0")
        if self.flush_interval <= 0:
            raise FleetScanConfigError("flush_interval must be > 0")
        if self.store_timeout <= 0 or self.predictor_timeout <= 0 or self.shutdown_timeout <= 0:
            raise FleetScanConfigError("timeouts must be > 0")
        if self.average_speed_kmh <= 0:
            raise FleetScanConfigError("average_speed_kmh must be > 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> ScanConfig:
        """Create configuration from ``FLEETSCAN_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FLEETSCAN_HOST": "host",
            "FLEETSCAN_PREDICTOR_URL": "predictor_url",
            "FLEETSCAN_SNAPSHOT_PATH": "snapshot_path",
            "FLEETSCAN_FIREBASE_CREDENTIALS": "firebase_credentials",
            "FLEETSCAN_FIREBASE_DATABASE_URL": "firebase_database_url",
        }
        _ENV_NUMBER_MAP: dict[str, tuple[str, type]] = {
            "FLEETSCAN_PORT": ("port", int),
            "FLEETSCAN_MOVEMENT_THRESHOLD_DEG": ("movement_threshold_deg", float),
            "FLEETSCAN_HISTORY_LIMIT": ("history_limit", int),
            "FLEETSCAN_RETENTION_WINDOW_SECONDS": ("retention_window_seconds", float),
            "FLEETSCAN_RECENT_FIX_COUNT": ("recent_fix_count", int),
            "FLEETSCAN_FLUSH_INTERVAL": ("flush_interval", float),
            "FLEETSCAN_STORE_TIMEOUT": ("store_timeout", float),
            "FLEETSCAN_PREDICTOR_TIMEOUT": ("predictor_timeout", float),
            "FLEETSCAN_SHUTDOWN_TIMEOUT": ("shutdown_timeout", float),
            "FLEETSCAN_AVERAGE_SPEED_KMH": ("average_speed_kmh", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val

        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, kind)

        if "debug_payloads" not in overrides:
            config_kwargs["debug_payloads"] = _env_bool(env.get("FLEETSCAN_DEBUG_PAYLOADS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
