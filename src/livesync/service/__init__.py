"""
LiveSync service layer.

Periodic worker and systemd service installation.
"""

from livesync.service.worker import SyncWorker

__all__ = ["SyncWorker"]
