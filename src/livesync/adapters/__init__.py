"""
LiveSync location adapters.

One adapter variant per storage backend, selected by AdapterFactory
from the location's declared type.
"""

from livesync.adapters.base import CopyDecision, LocationAdapter, decide
from livesync.adapters.factory import AdapterFactory, create_adapter
from livesync.adapters.filesystem import FilesystemAdapter
from livesync.adapters.ftp import FtpAdapter

__all__ = [
    "AdapterFactory",
    "CopyDecision",
    "FilesystemAdapter",
    "FtpAdapter",
    "LocationAdapter",
    "create_adapter",
    "decide",
]
