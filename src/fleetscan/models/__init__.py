"""Data models for fleet records, scan events and derived entries."""

from fleetscan.models._base import StoreRecord
from fleetscan.models.activity import ActivityLogEntry, EmergencyAlert
from fleetscan.models.driver import Driver
from fleetscan.models.eta import EtaEstimate, EtaSource
from fleetscan.models.passenger import CheckInStatus, Passenger
from fleetscan.models.position import Coordinate, PositionFix
from fleetscan.models.scan import ScanRequest
from fleetscan.models.vehicle import Vehicle

__all__ = [
    "ActivityLogEntry",
    "CheckInStatus",
    "Coordinate",
    "Driver",
    "EmergencyAlert",
    "EtaEstimate",
    "EtaSource",
    "Passenger",
    "PositionFix",
    "ScanRequest",
    "StoreRecord",
    "Vehicle",
]
