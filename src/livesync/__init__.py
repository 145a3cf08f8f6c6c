"""
LiveSync - Periodic multi-location file synchronization.

Keeps a named set of files consistent across local folders, network
shares and FTP servers through a per-setting cache directory.
"""

__version__ = "1.0.0"
__author__ = "LiveSync Team"

from livesync.core.config import LiveSyncConfig
from livesync.sync.coordinator import SyncCoordinator

__all__ = ["LiveSyncConfig", "SyncCoordinator", "__version__"]
