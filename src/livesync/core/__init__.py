"""
LiveSync Core - Shared service layer.

Contains configuration, logging, cancellation, the error taxonomy
and the report models used by the sync engine.
"""

from livesync.core.cancellation import CancellationToken
from livesync.core.config import LiveSyncConfig, Location, LocationType, SyncSetting
from livesync.core.errors import (
    ConfigurationError,
    LiveSyncError,
    SyncCancelledError,
    TransientLocationError,
)
from livesync.core.logging import get_logger, setup_logging

__all__ = [
    "CancellationToken",
    "LiveSyncConfig",
    "Location",
    "LocationType",
    "SyncSetting",
    "ConfigurationError",
    "LiveSyncError",
    "SyncCancelledError",
    "TransientLocationError",
    "get_logger",
    "setup_logging",
]
