"""fleetscan - RFID/GPS scan ingestion for bus fleets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetscan")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetscan.config import ScanConfig
from fleetscan.delivery import DeliveryBuffer, SnapshotFile, StoreLogSink
from fleetscan.estimator import EtaContext, EtaEstimator
from fleetscan.exceptions import (
    ConflictingCheckInError,
    FleetScanConfigError,
    FleetScanError,
    NotFoundError,
    PersistenceError,
    PredictorError,
    RemoteUnavailableError,
    ScanValidationError,
    StoreError,
    TagNotFoundError,
    VehicleNotFoundError,
)
from fleetscan.handler import ScanHandler, ScanOutcome
from fleetscan.models import (
    ActivityLogEntry,
    CheckInStatus,
    Coordinate,
    Driver,
    EmergencyAlert,
    EtaEstimate,
    Passenger,
    PositionFix,
    ScanRequest,
    Vehicle,
)
from fleetscan.resolver import EntityResolver
from fleetscan.service import ScanService
from fleetscan.state.retention import HistoryRetention
from fleetscan.state.tracker import LocationTracker, Observation
from fleetscan.store import DocumentStore, MemoryStore

__all__ = [
    "__version__",
    "ActivityLogEntry",
    "CheckInStatus",
    "ConflictingCheckInError",
    "Coordinate",
    "DeliveryBuffer",
    "DocumentStore",
    "Driver",
    "EmergencyAlert",
    "EntityResolver",
    "EtaContext",
    "EtaEstimate",
    "EtaEstimator",
    "FleetScanConfigError",
    "FleetScanError",
    "HistoryRetention",
    "LocationTracker",
    "MemoryStore",
    "NotFoundError",
    "Observation",
    "Passenger",
    "PersistenceError",
    "PositionFix",
    "PredictorError",
    "RemoteUnavailableError",
    "ScanConfig",
    "ScanHandler",
    "ScanOutcome",
    "ScanRequest",
    "ScanService",
    "ScanValidationError",
    "SnapshotFile",
    "StoreError",
    "StoreLogSink",
    "TagNotFoundError",
    "Vehicle",
    "VehicleNotFoundError",
]
