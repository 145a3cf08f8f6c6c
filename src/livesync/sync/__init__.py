"""
LiveSync sync engine.

Cache-mediated pull/push synchronization with hash-confirmed
last-write-wins and bounded backup rotation.
"""

from livesync.sync.backup import backup_file, backup_name, expired_backups
from livesync.sync.hasher import digest_file, digest_stream
from livesync.sync.scanner import scan_directory
from livesync.sync.coordinator import SyncCoordinator

__all__ = [
    "SyncCoordinator",
    "backup_file",
    "backup_name",
    "digest_file",
    "digest_stream",
    "expired_backups",
    "scan_directory",
]
