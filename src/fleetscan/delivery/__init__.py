"""Buffered, at-least-once delivery of activity log entries."""

from fleetscan.delivery.buffer import DeliveryBuffer, StoreLogSink
from fleetscan.delivery.snapshot import SnapshotFile

__all__ = ["DeliveryBuffer", "SnapshotFile", "StoreLogSink"]
