"""
LiveSync error taxonomy.
"""

from __future__ import annotations


class LiveSyncError(Exception):
    """Base class for all LiveSync errors."""


class ConfigurationError(LiveSyncError):
    """Raised when a sync setting or location cannot be used as configured."""


class TransientLocationError(LiveSyncError):
    """Raised when a location is temporarily unreachable.

    Adapters recover from this locally: the location is skipped for the
    remainder of the current pull or push call.
    """

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"{location}: {reason}")
        self.location = location
        self.reason = reason


class SyncCancelledError(LiveSyncError):
    """Raised when a sync cycle is cancelled or runs past its deadline."""
